"""paper-scout: search arXiv, summarize papers, and keep a personal library."""

from paper_scout.errors import PaperScoutError
from paper_scout.models import Paper, Preferences, SavedPaper, UserConfig
from paper_scout.session import TOOL_DEFINITIONS, ToolSession, build_tool_context
from paper_scout.tools import ToolContext, ToolError

__version__ = "0.1.0"

__all__ = [
    "TOOL_DEFINITIONS",
    "Paper",
    "PaperScoutError",
    "Preferences",
    "SavedPaper",
    "ToolContext",
    "ToolError",
    "ToolSession",
    "UserConfig",
    "__version__",
    "build_tool_context",
]
