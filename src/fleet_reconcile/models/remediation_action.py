"""RemediationAction and execution report data classes."""

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any

from .resource import ResourceKind


class Operation(str, enum.Enum):
    """Mutations the executor knows how to apply.

    Declaration order is the order of operations on the same kind.
    """

    DETACH = "detach"
    CLEAR_RULES = "clear-rules"
    CLEAR_ROUTES = "clear-routes"
    CLEAR_TAINTS = "clear-taints"
    DELETE = "delete"
    PATCH_FINALIZERS = "patch-finalizers"


OPERATION_ORDER = {op: index for index, op in enumerate(Operation)}


class ActionStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    DRY_RUN = "dry-run"


@dataclass(frozen=True)
class RemediationAction:
    """Represents one planned mutation against a single target."""

    target_kind: ResourceKind
    target_identity: str
    operation: Operation
    dependency_rank: int
    region: str = ""
    display_name: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict, compare=False)

    def describe(self) -> str:
        name = f" ({self.display_name})" if self.display_name else ""
        return (
            f"{self.operation.value} {self.target_kind.value} "
            f"{self.target_identity}{name}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target_kind": self.target_kind.value,
            "target_identity": self.target_identity,
            "operation": self.operation.value,
            "dependency_rank": self.dependency_rank,
            "region": self.region,
            "display_name": self.display_name,
            "parameters": dict(self.parameters),
        }


@dataclass
class ActionOutcome:
    """What happened to one action during execution."""

    action: RemediationAction
    status: ActionStatus
    attempts: int = 0
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.action.to_dict()
        data.update(
            {
                "status": self.status.value,
                "attempts": self.attempts,
                "error": self.error,
                "error_kind": self.error_kind,
            }
        )
        return data


@dataclass
class ExecutionReport:
    """Every attempted action and its outcome, in execution order."""

    outcomes: list[ActionOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    def count(self, status: ActionStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def succeeded(self) -> int:
        return self.count(ActionStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self.count(ActionStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(ActionStatus.SKIPPED)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def failures(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if o.status is ActionStatus.FAILED]

    def summary(self) -> dict[str, int]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "dry_run": self.count(ActionStatus.DRY_RUN),
        }
