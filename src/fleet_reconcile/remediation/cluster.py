"""Cluster hub mutations through ClusterRegistry."""

from __future__ import annotations
from typing import Callable

from ..discovery.registration import ClusterRegistry
from ..models import Operation, RemediationAction, ResourceKind, RunContext

K = ResourceKind
Handler = Callable[[RemediationAction, RunContext], None]


def cluster_handlers(registry: ClusterRegistry) -> dict[tuple[ResourceKind, Operation], Handler]:
    """Bind hub mutations to one registry connection."""

    def patch_finalizers(action: RemediationAction, context: RunContext) -> None:
        registry.patch_finalizers(
            action.target_kind,
            action.target_identity,
            namespace=action.parameters.get("namespace"),
        )

    def clear_taints(action: RemediationAction, context: RunContext) -> None:
        registry.clear_taints(action.target_identity)

    def delete_registration(action: RemediationAction, context: RunContext) -> None:
        registry.delete_registration(action.target_identity)

    return {
        (K.GITOPS_APPLICATION, Operation.PATCH_FINALIZERS): patch_finalizers,
        (K.MANAGED_CLUSTER_REGISTRATION, Operation.PATCH_FINALIZERS): patch_finalizers,
        (K.NAMESPACE, Operation.PATCH_FINALIZERS): patch_finalizers,
        (K.MANAGED_CLUSTER_REGISTRATION, Operation.CLEAR_TAINTS): clear_taints,
        (K.MANAGED_CLUSTER_REGISTRATION, Operation.DELETE): delete_registration,
    }
