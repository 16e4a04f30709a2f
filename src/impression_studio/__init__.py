"""
Impression Studio - AI-guided interview recording.

Plans interview questions, records one answer per question, adapts the next
question from each answer, and hands the finished recordings off for video
assembly.
"""

__version__ = "0.1.0"
