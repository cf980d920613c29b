"""State comparator: repository vs. cluster hub vs. cloud inventory.

Everything here is a pure function of its inputs.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Iterable

from ..models import (
    Availability,
    ClusterRecord,
    HUB_REGION,
    IssueTag,
    NamespacePhase,
    Origin,
    RegistrationStatus,
    ResourceEntity,
    ResourceKind,
)
from ..utils import extract_cluster_name, infra_id_belongs_to


def is_orphaned_registration(record: ClusterRecord) -> bool:
    return (
        record.registration_status is RegistrationStatus.EXISTS
        and not record.repo_config_present
    )


def is_missing_registration(record: ClusterRecord) -> bool:
    return (
        record.repo_config_present
        and record.registration_status is RegistrationStatus.NOT_FOUND
    )


def is_stuck_namespace(record: ClusterRecord) -> bool:
    return record.namespace_phase is NamespacePhase.TERMINATING


def is_stuck_finalizers(record: ClusterRecord) -> bool:
    return record.has_finalizers and record.availability is not Availability.TRUE


def is_tainted(record: ClusterRecord) -> bool:
    return bool(record.taints)


ISSUE_PREDICATES = (
    (IssueTag.ORPHANED_REGISTRATION, is_orphaned_registration),
    (IssueTag.MISSING_REGISTRATION, is_missing_registration),
    (IssueTag.STUCK_NAMESPACE, is_stuck_namespace),
    (IssueTag.STUCK_FINALIZERS, is_stuck_finalizers),
    (IssueTag.TAINTED, is_tainted),
)


def classify(record: ClusterRecord) -> frozenset[IssueTag]:
    """Evaluate every predicate independently; empty means OK."""
    return frozenset(tag for tag, predicate in ISSUE_PREDICATES if predicate(record))


def compare(
    repo_clusters: Iterable[str], live_clusters: Iterable[ClusterRecord]
) -> list[tuple[ClusterRecord, frozenset[IssueTag]]]:
    """Classify the union of repository-declared and live cluster names.

    A name seen in only one source is still evaluated, with the other
    source's fields defaulted to not-found.
    """
    declared = set(repo_clusters)
    live = {record.name: record for record in live_clusters}

    results = []
    for name in sorted(declared | set(live)):
        record = live.get(name)
        if record is None:
            record = ClusterRecord(name=name, repo_config_present=True)
        elif record.repo_config_present != (name in declared):
            record = replace(record, repo_config_present=name in declared)
        results.append((record, classify(record)))
    return results


def _entity_cluster(entity: ResourceEntity) -> str | None:
    if entity.kind in (
        ResourceKind.MANAGED_CLUSTER_REGISTRATION,
        ResourceKind.NAMESPACE,
    ):
        return entity.identity
    if entity.kind is ResourceKind.GITOPS_APPLICATION:
        return entity.container_ref
    return extract_cluster_name(entity.tags)


def tag_origins(
    declared_names: Iterable[str], entities: Iterable[ResourceEntity]
) -> list[ResourceEntity]:
    """Return copies of ``entities`` with ``origin`` set.

    Declared clusters with no live entity at all produce a declared-only
    registration placeholder so the gap shows up in the inventory.
    """
    declared = sorted(set(declared_names))
    seen: set[str] = set()
    tagged = []

    for entity in entities:
        cluster = _entity_cluster(entity)
        owner = None
        if cluster:
            # Exact names win over infra-id prefixes
            owner = cluster if cluster in declared else next(
                (name for name in declared if infra_id_belongs_to(cluster, name)),
                None,
            )
        if owner is not None:
            seen.add(owner)
            tagged.append(entity.with_origin(Origin.BOTH))
        else:
            tagged.append(entity.with_origin(Origin.LIVE_ONLY))

    for name in declared:
        if name in seen:
            continue
        tagged.append(
            ResourceEntity(
                kind=ResourceKind.MANAGED_CLUSTER_REGISTRATION,
                identity=name,
                region=HUB_REGION,
                display_name=name,
                lifecycle_state="not-found",
                origin=Origin.DECLARED_ONLY,
            )
        )
    return tagged
