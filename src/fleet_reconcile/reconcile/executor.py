"""Remediation executor.

Runs planned actions strictly in order, one at a time. A failed action is
recorded and the next one runs; nothing here aborts the run.
"""

from __future__ import annotations
import time
from typing import Callable, Mapping, Sequence

from botocore.exceptions import ClientError
from kubernetes.client.rest import ApiException

from ..models import (
    ActionOutcome,
    ActionStatus,
    DependencyBlockedDeletion,
    ExecutionReport,
    Operation,
    RemediationAction,
    RemediationError,
    ResourceKind,
    RunContext,
)
from ..utils import get_logger
from ..utils.aws_helpers import error_code, is_dependency_violation, is_not_found
from .confirm import ConfirmationStrategy

logger = get_logger()

Handler = Callable[[RemediationAction, RunContext], None]
Handlers = Mapping[tuple[ResourceKind, Operation], Handler]


def _classify_error(error: Exception) -> tuple[str, str, bool]:
    """Return (error kind, message, already absent) for a failed attempt."""
    if isinstance(error, ClientError):
        code = error_code(error)
        if is_not_found(error):
            return code, str(error), True
        if is_dependency_violation(error):
            return DependencyBlockedDeletion.kind, str(error), False
        return code or RemediationError.kind, str(error), False
    if isinstance(error, ApiException):
        if error.status == 404:
            return "NotFound", error.reason or "", True
        if error.status == 409:
            return DependencyBlockedDeletion.kind, error.reason or "", False
        return f"ApiException{error.status}", error.reason or str(error), False
    return type(error).__name__, str(error), False


def _run_with_retries(
    action: RemediationAction, handler: Handler, context: RunContext
) -> ActionOutcome:
    max_attempts = max(1, context.max_retries)
    error_kind, message = RemediationError.kind, ""

    for attempt in range(1, max_attempts + 1):
        try:
            handler(action, context)
        except Exception as e:
            error_kind, message, absent = _classify_error(e)
            if absent:
                logger.info(
                    "Target already absent",
                    extra={"action": action.describe(), "region": action.region},
                )
                return ActionOutcome(action, ActionStatus.SUCCEEDED, attempts=attempt)
            logger.warning(
                "Remediation attempt failed",
                extra={
                    "action": action.describe(),
                    "region": action.region,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error_kind": error_kind,
                    "error": message,
                },
            )
            if attempt < max_attempts:
                time.sleep(context.retry_delay_seconds)
            continue

        logger.info(
            "Remediation action succeeded",
            extra={
                "action": action.describe(),
                "region": action.region,
                "attempts": attempt,
            },
        )
        return ActionOutcome(action, ActionStatus.SUCCEEDED, attempts=attempt)

    if error_kind == DependencyBlockedDeletion.kind:
        logger.error(
            "Deletion blocked by dependent resources, manual follow-up needed",
            extra={"action": action.describe(), "region": action.region},
        )
    return ActionOutcome(
        action,
        ActionStatus.FAILED,
        attempts=max_attempts,
        error=message,
        error_kind=error_kind,
    )


def execute(
    actions: Sequence[RemediationAction],
    confirm: ConfirmationStrategy,
    context: RunContext,
    handlers: Handlers,
) -> ExecutionReport:
    """Apply ``actions`` in the given order and report every outcome."""
    report = ExecutionReport()
    logger.info(
        "Starting remediation",
        extra={"actions": len(actions), "dry_run": context.dry_run},
    )

    for action in actions:
        if context.dry_run:
            logger.info(
                f"[DRY-RUN] Would {action.describe()}",
                extra={"region": action.region, "parameters": dict(action.parameters)},
            )
            report.outcomes.append(ActionOutcome(action, ActionStatus.DRY_RUN))
            continue

        handler = handlers.get((action.target_kind, action.operation))
        if handler is None:
            logger.error(
                "No handler for action",
                extra={"action": action.describe()},
            )
            report.outcomes.append(
                ActionOutcome(
                    action,
                    ActionStatus.FAILED,
                    error=f"unsupported operation {action.operation.value} "
                    f"on {action.target_kind.value}",
                    error_kind=RemediationError.kind,
                )
            )
            continue

        if not confirm.confirm(action):
            logger.info("Action declined", extra={"action": action.describe()})
            report.outcomes.append(ActionOutcome(action, ActionStatus.SKIPPED))
            continue

        report.outcomes.append(_run_with_retries(action, handler, context))

    logger.info("Remediation finished", extra=report.summary())
    return report
