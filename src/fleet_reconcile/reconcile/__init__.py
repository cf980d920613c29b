"""Comparison, planning and execution of fleet remediation."""

from .comparator import classify, compare, tag_origins
from .confirm import (
    AlwaysConfirm,
    ConfirmationStrategy,
    InteractiveConfirm,
    NeverConfirm,
    select_strategy,
)
from .executor import execute
from .planner import (
    DEPENDENCY_RANKS,
    TEARDOWN_DEPENDENCIES,
    dependency_ranks,
    plan,
    plan_cluster_remediation,
)

__all__ = [
    "classify",
    "compare",
    "tag_origins",
    "AlwaysConfirm",
    "ConfirmationStrategy",
    "InteractiveConfirm",
    "NeverConfirm",
    "select_strategy",
    "execute",
    "DEPENDENCY_RANKS",
    "TEARDOWN_DEPENDENCIES",
    "dependency_ranks",
    "plan",
    "plan_cluster_remediation",
]
