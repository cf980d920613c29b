"""Dependency-ordered remediation planner.

Teardown order is data: ``TEARDOWN_DEPENDENCIES`` maps each kind to the
kinds that must be gone before it can be deleted. Ranks come from a
topological sort of that table, ties broken by ResourceKind declaration
order, which yields:

    load-balancer -> database-instance -> compute-instance -> block-volume
    -> service-endpoint -> nat-gateway -> elastic-ip -> network-interface
    -> route-table -> security-group -> network-acl -> subnet
    -> internet-gateway -> network

and for the hub: gitops-application -> managed-cluster-registration ->
namespace.
"""

from __future__ import annotations
import heapq
from typing import Iterable

from ..models import (
    HUB_REGION,
    IssueTag,
    Operation,
    RemediationAction,
    ResourceEntity,
    ResourceKind,
)
from ..models.cluster import ClusterRecord, NamespacePhase
from ..models.remediation_action import OPERATION_ORDER
from ..utils import get_logger

logger = get_logger()

K = ResourceKind

TEARDOWN_DEPENDENCIES: dict[ResourceKind, tuple[ResourceKind, ...]] = {
    K.LOAD_BALANCER: (),
    K.DATABASE_INSTANCE: (),
    K.COMPUTE_INSTANCE: (),
    K.BLOCK_VOLUME: (K.COMPUTE_INSTANCE,),
    K.SERVICE_ENDPOINT: (),
    K.NAT_GATEWAY: (),
    K.ELASTIC_IP: (K.NAT_GATEWAY,),
    K.NETWORK_INTERFACE: (
        K.LOAD_BALANCER,
        K.DATABASE_INSTANCE,
        K.COMPUTE_INSTANCE,
        K.SERVICE_ENDPOINT,
        K.NAT_GATEWAY,
    ),
    K.ROUTE_TABLE: (K.SERVICE_ENDPOINT, K.NAT_GATEWAY),
    K.SECURITY_GROUP: (
        K.LOAD_BALANCER,
        K.DATABASE_INSTANCE,
        K.COMPUTE_INSTANCE,
        K.SERVICE_ENDPOINT,
        K.NETWORK_INTERFACE,
    ),
    K.NETWORK_ACL: (),
    K.SUBNET: (
        K.LOAD_BALANCER,
        K.DATABASE_INSTANCE,
        K.COMPUTE_INSTANCE,
        K.SERVICE_ENDPOINT,
        K.NAT_GATEWAY,
        K.NETWORK_INTERFACE,
        K.NETWORK_ACL,
    ),
    K.INTERNET_GATEWAY: (K.LOAD_BALANCER, K.NAT_GATEWAY, K.ELASTIC_IP),
    K.NETWORK: (
        K.SERVICE_ENDPOINT,
        K.NAT_GATEWAY,
        K.ROUTE_TABLE,
        K.SECURITY_GROUP,
        K.NETWORK_ACL,
        K.SUBNET,
        K.INTERNET_GATEWAY,
    ),
    K.GITOPS_APPLICATION: (),
    K.MANAGED_CLUSTER_REGISTRATION: (K.GITOPS_APPLICATION,),
    K.NAMESPACE: (K.MANAGED_CLUSTER_REGISTRATION,),
}


def dependency_ranks(
    table: dict[ResourceKind, tuple[ResourceKind, ...]] = TEARDOWN_DEPENDENCIES,
) -> dict[ResourceKind, int]:
    """Kahn's algorithm; among ready kinds the earliest declared goes first."""
    order = {kind: index for index, kind in enumerate(ResourceKind)}
    remaining = {kind: set(prereqs) for kind, prereqs in table.items()}
    dependents: dict[ResourceKind, list[ResourceKind]] = {kind: [] for kind in table}
    for kind, prereqs in table.items():
        for prereq in prereqs:
            if prereq not in table:
                raise ValueError(f"{kind.value} depends on unknown kind {prereq.value}")
            dependents[prereq].append(kind)

    ready = [(order[kind], kind) for kind, prereqs in remaining.items() if not prereqs]
    heapq.heapify(ready)
    ranks: dict[ResourceKind, int] = {}
    while ready:
        _, kind = heapq.heappop(ready)
        ranks[kind] = len(ranks)
        for dependent in dependents[kind]:
            remaining[dependent].discard(kind)
            if not remaining[dependent]:
                heapq.heappush(ready, (order[dependent], dependent))

    if len(ranks) != len(table):
        cyclic = sorted(k.value for k in table if k not in ranks)
        raise ValueError(f"Dependency cycle among: {', '.join(cyclic)}")
    return ranks


DEPENDENCY_RANKS = dependency_ranks()


def _action(
    entity: ResourceEntity, operation: Operation, **parameters
) -> RemediationAction:
    return RemediationAction(
        target_kind=entity.kind,
        target_identity=entity.identity,
        operation=operation,
        dependency_rank=DEPENDENCY_RANKS[entity.kind],
        region=entity.region,
        display_name=entity.display_name,
        parameters=parameters,
    )


def sort_actions(actions: Iterable[RemediationAction]) -> list[RemediationAction]:
    """Order by rank, then operation, then region and identity."""
    return sorted(
        actions,
        key=lambda a: (
            a.dependency_rank,
            OPERATION_ORDER[a.operation],
            a.region,
            a.target_identity,
            str(a.parameters.get("sequence", "")),
        ),
    )


def _is_protected(entity: ResourceEntity) -> bool:
    """Resources AWS deletes together with their VPC."""
    if entity.kind is K.ROUTE_TABLE:
        return bool(entity.details.get("is_main"))
    if entity.kind is K.SECURITY_GROUP:
        return bool(entity.details.get("is_default"))
    if entity.kind is K.NETWORK_ACL:
        return bool(entity.details.get("is_default"))
    return False


def _entity_actions(
    entity: ResourceEntity, instance_ids: set[str]
) -> list[RemediationAction]:
    if entity.kind is K.SECURITY_GROUP:
        # Rules cleared for every group so cross-references cannot block deletes
        return [
            _action(entity, Operation.CLEAR_RULES),
            _action(entity, Operation.DELETE),
        ]

    if entity.kind is K.ROUTE_TABLE:
        actions = [
            _action(
                entity,
                Operation.CLEAR_ROUTES,
                destination_key=route["key"],
                destination=route["value"],
                sequence=f"{index:04d}",
            )
            for index, route in enumerate(entity.details.get("routes", []))
        ]
        actions.append(
            _action(
                entity,
                Operation.DELETE,
                associations=list(entity.details.get("associations", [])),
            )
        )
        return actions

    if entity.kind is K.INTERNET_GATEWAY:
        actions = [
            _action(entity, Operation.DETACH, vpc_id=vpc_id, sequence=vpc_id)
            for vpc_id in entity.details.get("attached_vpcs", [])
        ]
        actions.append(_action(entity, Operation.DELETE))
        return actions

    if entity.kind is K.NETWORK_INTERFACE:
        actions = []
        attachment_id = entity.details.get("attachment_id")
        attached_instance = entity.details.get("attached_instance")
        # Interfaces of instances being terminated go away with the instance;
        # requester-managed ones belong to the service that owns them
        if (
            attachment_id
            and not entity.details.get("requester_managed")
            and attached_instance not in instance_ids
        ):
            actions.append(
                _action(entity, Operation.DETACH, attachment_id=attachment_id)
            )
        actions.append(_action(entity, Operation.DELETE))
        return actions

    if entity.kind is K.LOAD_BALANCER:
        return [
            _action(
                entity,
                Operation.DELETE,
                flavor=entity.details.get("flavor", "classic"),
                arn=entity.details.get("arn"),
            )
        ]

    if entity.kind is K.ELASTIC_IP:
        return [
            _action(
                entity,
                Operation.DELETE,
                association_id=entity.details.get("association_id"),
            )
        ]

    return [_action(entity, Operation.DELETE)]


def plan(entities: Iterable[ResourceEntity]) -> list[RemediationAction]:
    """Compute a safe teardown order for cloud resources."""
    entities = list(entities)
    instance_ids = {e.identity for e in entities if e.kind is K.COMPUTE_INSTANCE}

    actions = []
    skipped = 0
    for entity in entities:
        if not entity.kind.is_cloud:
            raise ValueError(
                f"{entity.kind.value} {entity.identity} is not a cloud resource"
            )
        if _is_protected(entity):
            skipped += 1
            continue
        if entity.kind is K.NETWORK and entity.details.get("is_default"):
            logger.warning(
                "Default VPC matched the pattern, not planning its deletion",
                extra={"vpc_id": entity.identity, "region": entity.region},
            )
            skipped += 1
            continue
        actions.extend(_entity_actions(entity, instance_ids))

    ordered = sort_actions(actions)
    logger.info(
        "Remediation plan built",
        extra={
            "entities": len(entities),
            "actions": len(ordered),
            "skipped_vpc_defaults": skipped,
        },
    )
    return ordered


def _hub_action(
    kind: ResourceKind,
    identity: str,
    operation: Operation,
    **parameters,
) -> RemediationAction:
    return RemediationAction(
        target_kind=kind,
        target_identity=identity,
        operation=operation,
        dependency_rank=DEPENDENCY_RANKS[kind],
        region=HUB_REGION,
        display_name=parameters.pop("display_name", None),
        parameters=parameters,
    )


def cluster_actions(
    record: ClusterRecord, issues: frozenset[IssueTag]
) -> list[RemediationAction]:
    """Remediation suggested for a single classified cluster.

    missing-registration is surfaced only; nothing here recreates a
    registration.
    """
    actions: list[RemediationAction] = []
    deleting_registration = IssueTag.ORPHANED_REGISTRATION in issues
    stuck_finalizers = IssueTag.STUCK_FINALIZERS in issues
    stuck_namespace = IssueTag.STUCK_NAMESPACE in issues

    if stuck_finalizers or stuck_namespace:
        for app in record.applications:
            if app.details.get("finalizers"):
                actions.append(
                    _hub_action(
                        K.GITOPS_APPLICATION,
                        app.identity,
                        Operation.PATCH_FINALIZERS,
                        namespace=app.details.get("namespace"),
                        cluster=record.name,
                        display_name=app.display_name,
                    )
                )

    if deleting_registration:
        actions.append(
            _hub_action(
                K.MANAGED_CLUSTER_REGISTRATION,
                record.name,
                Operation.DELETE,
                cluster=record.name,
                issue=IssueTag.ORPHANED_REGISTRATION.value,
            )
        )

    if stuck_finalizers:
        actions.append(
            _hub_action(
                K.MANAGED_CLUSTER_REGISTRATION,
                record.name,
                Operation.PATCH_FINALIZERS,
                cluster=record.name,
            )
        )

    if IssueTag.TAINTED in issues and not deleting_registration:
        actions.append(
            _hub_action(
                K.MANAGED_CLUSTER_REGISTRATION,
                record.name,
                Operation.CLEAR_TAINTS,
                cluster=record.name,
                taints=sorted(record.taints),
            )
        )

    if stuck_namespace or (
        stuck_finalizers and record.namespace_phase is NamespacePhase.TERMINATING
    ):
        actions.append(
            _hub_action(
                K.NAMESPACE,
                record.name,
                Operation.PATCH_FINALIZERS,
                cluster=record.name,
            )
        )

    return sort_actions(actions)


def plan_cluster_remediation(
    classified: Iterable[tuple[ClusterRecord, frozenset[IssueTag]]],
) -> list[RemediationAction]:
    """Plan hub remediation for every classified cluster."""
    actions = []
    for record, issues in classified:
        actions.extend(cluster_actions(record, issues))
    ordered = sort_actions(actions)
    logger.info(
        "Cluster remediation plan built",
        extra={"actions": len(ordered)},
    )
    return ordered
