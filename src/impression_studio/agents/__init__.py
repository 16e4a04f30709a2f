"""
Agents module: interviewer catalog, agent selection and question planning.
"""

from impression_studio.agents.agent_selector import AgentSelector, classify_title
from impression_studio.agents.catalog import AgentCatalog, agent_tags
from impression_studio.agents.profile_context import ProfileContextClient
from impression_studio.agents.question_planner import InterviewPlan, QuestionPlanner

__all__ = [
    "AgentCatalog",
    "AgentSelector",
    "InterviewPlan",
    "ProfileContextClient",
    "QuestionPlanner",
    "agent_tags",
    "classify_title",
]
