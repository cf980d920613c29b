"""ClusterRecord and issue tags."""

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any

from .resource import ResourceEntity


class RegistrationStatus(str, enum.Enum):
    NOT_FOUND = "not-found"
    EXISTS = "exists"


class Availability(str, enum.Enum):
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"


class NamespacePhase(str, enum.Enum):
    ACTIVE = "active"
    TERMINATING = "terminating"
    NOT_FOUND = "not-found"


class IssueTag(str, enum.Enum):
    ORPHANED_REGISTRATION = "orphaned-registration"
    MISSING_REGISTRATION = "missing-registration"
    STUCK_NAMESPACE = "stuck-namespace"
    STUCK_FINALIZERS = "stuck-finalizers"
    TAINTED = "tainted"

    @property
    def is_configuration_mismatch(self) -> bool:
        """Repository and hub disagree; remediated only on confirmation."""
        return self in (
            IssueTag.ORPHANED_REGISTRATION,
            IssueTag.MISSING_REGISTRATION,
        )

    @property
    def is_blocking(self) -> bool:
        return self is not IssueTag.TAINTED


IssueClassification = frozenset  # frozenset[IssueTag]

OK_LABEL = "OK"


def describe_issues(issues: frozenset[IssueTag]) -> str:
    """Render a classification as a stable, comma separated string."""
    if not issues:
        return OK_LABEL
    return ",".join(sorted(tag.value for tag in issues))


@dataclass(frozen=True)
class ClusterRecord:
    """One fleet member as seen on a single reconciliation pass."""

    name: str
    declared_region: str | None = None
    registration_status: RegistrationStatus = RegistrationStatus.NOT_FOUND
    availability: Availability = Availability.UNKNOWN
    has_finalizers: bool = False
    taints: frozenset[str] = field(default_factory=frozenset)
    namespace_phase: NamespacePhase = NamespacePhase.NOT_FOUND
    repo_config_present: bool = False
    applications: tuple[ResourceEntity, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "declared_region": self.declared_region,
            "registration_status": self.registration_status.value,
            "availability": self.availability.value,
            "has_finalizers": self.has_finalizers,
            "taints": sorted(self.taints),
            "namespace_phase": self.namespace_phase.value,
            "repo_config_present": self.repo_config_present,
            "applications": [
                {
                    "name": app.identity,
                    "sync_status": app.details.get("sync_status"),
                    "health_status": app.details.get("health_status"),
                }
                for app in self.applications
            ],
        }
