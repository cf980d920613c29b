"""Data models for fleet reconciliation."""

from .resource import ResourceEntity, ResourceKind, Origin, HUB_KINDS, HUB_REGION
from .cluster import (
    Availability,
    ClusterRecord,
    IssueTag,
    NamespacePhase,
    RegistrationStatus,
    describe_issues,
)
from .remediation_action import (
    ActionOutcome,
    ActionStatus,
    ExecutionReport,
    Operation,
    RemediationAction,
)
from .config import Config, RunContext
from .errors import (
    DependencyBlockedDeletion,
    FatalPrecondition,
    FleetReconcileError,
    RemediationError,
)

__all__ = [
    "ResourceEntity",
    "ResourceKind",
    "Origin",
    "HUB_KINDS",
    "HUB_REGION",
    "Availability",
    "ClusterRecord",
    "IssueTag",
    "NamespacePhase",
    "RegistrationStatus",
    "describe_issues",
    "ActionOutcome",
    "ActionStatus",
    "ExecutionReport",
    "Operation",
    "RemediationAction",
    "Config",
    "RunContext",
    "DependencyBlockedDeletion",
    "FatalPrecondition",
    "FleetReconcileError",
    "RemediationError",
]
