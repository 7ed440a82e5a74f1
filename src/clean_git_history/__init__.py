"""Rewrite git history to a single author and strip AI attribution lines."""

__version__ = "1.0.0"

from .config import Identity, Invocation
from .planner import RewritePlan, plan_rewrite
from .rewriter import HistoryRewriter, RewriteOutcome

__all__ = [
    "HistoryRewriter",
    "Identity",
    "Invocation",
    "RewriteOutcome",
    "RewritePlan",
    "plan_rewrite",
    "__version__",
]
