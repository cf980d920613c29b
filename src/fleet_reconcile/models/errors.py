"""Error taxonomy for fleet reconciliation."""

from __future__ import annotations


class FleetReconcileError(Exception):
    """Base class for errors raised by fleet-reconcile."""


class FatalPrecondition(FleetReconcileError):
    """Missing tool, credentials or connectivity; the run must not start."""


class RemediationError(FleetReconcileError):
    """A single remediation action failed."""

    kind = "RemediationError"


class DependencyBlockedDeletion(RemediationError):
    """Delete refused because a dependent resource still exists."""

    kind = "DependencyBlockedDeletion"

