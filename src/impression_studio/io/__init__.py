"""
IO module for the terminal studio.
"""

from impression_studio.io.console import StudioConsole

__all__ = ["StudioConsole"]
