"""Resource catalog builder.

Pattern-scoped discovery runs in two passes:
  1. Every kind in every region is listed and filtered by the pattern.
  2. For every network found in pass one, the VPC-scoped kinds are
     re-queried by VPC id, catching untagged resources that would block
     the VPC delete later.

Each (kind, region) query is fault-isolated: a failure yields an empty
slice and a warning, never an abort.
"""

from __future__ import annotations
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from ..models import ResourceEntity, ResourceKind, RunContext
from ..utils import QueryResult, QueryWarning, get_logger, matches_pattern, run_query
from .aws import KIND_QUERIES, VPC_SCOPED_KINDS
from .cache import DiscoveryCache
from .repository import RepositoryConfig

logger = get_logger()

QueryTask = tuple[ResourceKind, str, "str | None"]


class Catalog:
    """Deduplicated inventory keyed by (kind, region, identity)."""

    def __init__(self, entities: Iterable[ResourceEntity] = ()):
        self._entities: dict[tuple[ResourceKind, str, str], ResourceEntity] = {}
        self.warnings: list[QueryWarning] = []
        self.extend(entities)

    def add(self, entity: ResourceEntity) -> bool:
        """Add an entity; returns False if its key is already present."""
        if entity.key in self._entities:
            return False
        self._entities[entity.key] = entity
        return True

    def extend(self, entities: Iterable[ResourceEntity]) -> int:
        return sum(1 for entity in entities if self.add(entity))

    def merge(self, other: Catalog) -> None:
        self.extend(other)
        self.warnings.extend(other.warnings)

    def of_kind(self, kind: ResourceKind) -> list[ResourceEntity]:
        return sorted(
            (e for e in self._entities.values() if e.kind is kind),
            key=lambda e: (e.region, e.identity),
        )

    def in_region(self, region: str) -> list[ResourceEntity]:
        return [e for e in self._entities.values() if e.region == region]

    @property
    def regions(self) -> set[str]:
        return {e.region for e in self._entities.values()}

    def __contains__(self, item) -> bool:
        key = item.key if isinstance(item, ResourceEntity) else item
        return key in self._entities

    def __iter__(self) -> Iterator[ResourceEntity]:
        return iter(
            sorted(
                self._entities.values(),
                key=lambda e: (e.region, list(ResourceKind).index(e.kind), e.identity),
            )
        )

    def __len__(self) -> int:
        return len(self._entities)


@dataclass(frozen=True)
class DiscoveryScope:
    """Regions plus identity pattern; an empty pattern means everything."""

    regions: tuple[str, ...]
    pattern: str = ""

    @property
    def unscoped(self) -> bool:
        return not self.pattern

    def matches(self, entity: ResourceEntity) -> bool:
        return matches_pattern(
            self.pattern, entity.identity, entity.display_name, entity.tags
        )


@dataclass
class OrphanInventory:
    """Full-region inventory plus repository-known clusters, for human review."""

    catalog: Catalog
    known_clusters: set[str] = field(default_factory=set)
    regions: list[str] = field(default_factory=list)


def _run_queries(
    tasks: list[QueryTask],
    queries: dict[ResourceKind, Callable[..., list[ResourceEntity]]],
    context: RunContext,
) -> list[tuple[QueryTask, QueryResult[ResourceEntity]]]:
    """Run independent (kind, region[, vpc]) queries in a thread pool."""
    results = []
    if not tasks:
        return results

    workers = max(1, min(context.discovery_workers, len(tasks)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(
                run_query,
                queries[kind],
                region,
                vpc_id,
                timeout=context.api_timeout_seconds,
            ): (kind, region, vpc_id)
            for kind, region, vpc_id in tasks
        }
        for future in as_completed(futures):
            results.append((futures[future], future.result()))
    return results


def _record_failure(
    catalog: Catalog, task: QueryTask, result: QueryResult[ResourceEntity]
) -> None:
    kind, region, vpc_id = task
    warning = QueryWarning(
        source=kind.value if not vpc_id else f"{kind.value}@{vpc_id}",
        region=region,
        message=result.error or "unknown error",
    )
    catalog.warnings.append(warning)
    logger.warning(
        "Discovery query failed, slice left empty",
        extra={
            "kind": kind.value,
            "region": region,
            "vpc_id": vpc_id,
            "error": result.error,
        },
    )


def discover(
    scope: DiscoveryScope,
    context: RunContext,
    cache: DiscoveryCache | None = None,
    queries: dict[ResourceKind, Callable[..., list[ResourceEntity]]] | None = None,
) -> Catalog:
    """Build a deduplicated catalog for ``scope``."""
    queries = queries or KIND_QUERIES
    start_time = time.time()
    catalog = Catalog()

    regions_to_scan = []
    for region in scope.regions:
        cached = None
        if cache is not None and not context.refresh_cache:
            cached = cache.load(scope.pattern, region)
        if cached is not None:
            catalog.extend(cached)
        else:
            regions_to_scan.append(region)

    if not regions_to_scan:
        return catalog

    fresh = Catalog()
    failed_regions: set[str] = set()

    # Pass one: full listing filtered by pattern
    tasks: list[QueryTask] = [
        (kind, region, None) for region in regions_to_scan for kind in queries
    ]
    for task, result in _run_queries(tasks, queries, context):
        if not result.ok:
            _record_failure(fresh, task, result)
            failed_regions.add(task[1])
            continue
        fresh.extend(entity for entity in result.items if scope.matches(entity))

    # Pass two: structural containment inside networks found by pattern
    second_pass_added = 0
    if not scope.unscoped:
        tasks = [
            (kind, network.region, network.identity)
            for network in fresh.of_kind(ResourceKind.NETWORK)
            for kind in VPC_SCOPED_KINDS
            if kind in queries
        ]
        for task, result in _run_queries(tasks, queries, context):
            if not result.ok:
                _record_failure(fresh, task, result)
                failed_regions.add(task[1])
                continue
            for entity in result.items:
                if fresh.add(entity):
                    second_pass_added += 1
                    logger.info(
                        "Second pass found untagged resource",
                        extra={
                            "kind": entity.kind.value,
                            "identity": entity.identity,
                            "vpc_id": task[2],
                            "region": entity.region,
                        },
                    )

    # A slice with failed queries is incomplete and must not be cached
    if cache is not None:
        for region in regions_to_scan:
            if region not in failed_regions:
                cache.store(scope.pattern, region, fresh.in_region(region))

    catalog.merge(fresh)
    logger.info(
        "Discovery complete",
        extra={
            "pattern": scope.pattern or "*",
            "regions": list(scope.regions),
            "entities": len(catalog),
            "second_pass_added": second_pass_added,
            "warnings": len(catalog.warnings),
            "duration_seconds": round(time.time() - start_time, 2),
        },
    )
    return catalog


def discover_orphans(
    regions: Iterable[str],
    repository: RepositoryConfig,
    context: RunContext,
    cache: DiscoveryCache | None = None,
    queries: dict[ResourceKind, Callable[..., list[ResourceEntity]]] | None = None,
) -> OrphanInventory:
    """Enumerate everything in explicit, repository and default regions."""
    target_regions = sorted(
        set(regions) | repository.regions() | set(context.default_regions)
    )
    known_clusters = {cluster.name for cluster in repository.clusters()}
    logger.info(
        "Starting orphan discovery",
        extra={
            "regions": target_regions,
            "known_clusters": len(known_clusters),
        },
    )
    catalog = discover(
        DiscoveryScope(tuple(target_regions)), context, cache=cache, queries=queries
    )
    return OrphanInventory(
        catalog=catalog, known_clusters=known_clusters, regions=target_regions
    )
