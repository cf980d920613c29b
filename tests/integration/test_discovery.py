"""Integration tests for two-pass catalog discovery.

Queries are replaced by in-memory fakes with the same (region, vpc_id,
timeout) signature as the AWS adapters.
"""

from __future__ import annotations
import pytest

from fleet_reconcile.discovery import (
    DiscoveryCache,
    DiscoveryScope,
    RepositoryConfig,
    discover,
    discover_orphans,
)
from fleet_reconcile.models import ResourceKind

K = ResourceKind


class FakeQueries:
    """Per-kind query fakes that record every call."""

    def __init__(self, inventory, failing=()):
        self.inventory = inventory
        self.failing = set(failing)
        self.calls = []

    def _query(self, kind):
        def query(region, vpc_id=None, timeout=30):
            self.calls.append((kind, region, vpc_id))
            if kind in self.failing or (kind, region) in self.failing:
                raise RuntimeError(f"{kind.value} API unavailable")
            return [
                entity
                for entity in self.inventory
                if entity.kind is kind
                and entity.region == region
                and (vpc_id is None or entity.container_ref == vpc_id)
            ]

        return query

    def table(self, kinds):
        return {kind: self._query(kind) for kind in kinds}


@pytest.fixture
def foo_inventory(resource_builder):
    """vpc-42 tagged foo, with one untagged subnet inside and one unrelated VPC."""
    return [
        resource_builder(K.NETWORK).with_identity("vpc-42").with_tag("owner", "foo").build(),
        resource_builder(K.SUBNET).with_identity("subnet-untagged").in_network("vpc-42").build(),
        resource_builder(K.SUBNET)
        .with_identity("subnet-foo")
        .in_network("vpc-42")
        .with_name("foo-private")
        .build(),
        resource_builder(K.NETWORK).with_identity("vpc-other").build(),
        resource_builder(K.SUBNET).with_identity("subnet-other").in_network("vpc-other").build(),
    ]


@pytest.mark.integration
@pytest.mark.aws
class TestDiscover:
    """Test pattern-scoped discovery."""

    def test_second_pass_adds_untagged_subnet_once(self, foo_inventory, run_context):
        """
        GIVEN pattern "foo" matching vpc-42 by tag and an untagged subnet inside it
        WHEN discover is called
        THEN the subnet is added exactly once and unrelated resources are excluded
        """
        fakes = FakeQueries(foo_inventory)
        scope = DiscoveryScope(("us-east-1",), "foo")

        catalog = discover(scope, run_context, queries=fakes.table([K.NETWORK, K.SUBNET]))

        identities = [e.identity for e in catalog]
        assert identities.count("subnet-untagged") == 1
        assert identities.count("subnet-foo") == 1
        assert "vpc-other" not in identities
        assert "subnet-other" not in identities
        assert (K.SUBNET, "us-east-1", "vpc-42") in fakes.calls
        assert catalog.warnings == []

    def test_unscoped_discovery_skips_second_pass(self, foo_inventory, run_context):
        """
        GIVEN no pattern
        WHEN discover is called
        THEN everything is listed and no VPC-scoped queries are made
        """
        fakes = FakeQueries(foo_inventory)

        catalog = discover(
            DiscoveryScope(("us-east-1",)), run_context, queries=fakes.table([K.NETWORK, K.SUBNET])
        )

        assert len(catalog) == 5
        assert all(vpc_id is None for _, _, vpc_id in fakes.calls)

    def test_failed_query_is_isolated(self, foo_inventory, run_context):
        """
        GIVEN the subnet query fails in every call
        WHEN discover is called
        THEN networks are still returned and warnings record the failure
        """
        fakes = FakeQueries(foo_inventory, failing={K.SUBNET})

        catalog = discover(
            DiscoveryScope(("us-east-1",), "foo"),
            run_context,
            queries=fakes.table([K.NETWORK, K.SUBNET]),
        )

        assert [e.identity for e in catalog] == ["vpc-42"]
        sources = {w.source for w in catalog.warnings}
        assert sources == {"subnet", "subnet@vpc-42"}
        assert "API unavailable" in catalog.warnings[0].message

    def test_failed_region_is_not_cached(self, foo_inventory, run_context, tmp_path, resource_builder):
        """
        GIVEN us-east-1 fails for subnets and us-west-2 succeeds
        WHEN discover is called with a cache
        THEN only us-west-2 is written to the cache
        """
        inventory = foo_inventory + [
            resource_builder(K.NETWORK).with_identity("vpc-w").in_region("us-west-2").with_name("foo-w").build()
        ]
        fakes = FakeQueries(inventory, failing={(K.SUBNET, "us-east-1")})
        cache = DiscoveryCache(tmp_path / "cache")
        scope = DiscoveryScope(("us-east-1", "us-west-2"), "foo")

        discover(scope, run_context, cache=cache, queries=fakes.table([K.NETWORK, K.SUBNET]))

        assert cache.load("foo", "us-east-1") is None
        assert [e.identity for e in cache.load("foo", "us-west-2")] == ["vpc-w"]

    def test_cached_slice_not_shared_between_patterns(self, run_context, tmp_path, resource_builder):
        """
        GIVEN discovery for a*b has cached vpc-axb and vpc-axxb
        WHEN discovery runs for a?b against the same cache
        THEN queries run again and vpc-axxb is not returned
        """
        inventory = [
            resource_builder(K.NETWORK).with_identity("vpc-axb").with_name("axb").build(),
            resource_builder(K.NETWORK).with_identity("vpc-axxb").with_name("axxb").build(),
        ]
        fakes = FakeQueries(inventory)
        cache = DiscoveryCache(tmp_path / "cache")
        table = fakes.table([K.NETWORK])

        wide = discover(DiscoveryScope(("us-east-1",), "a*b"), run_context, cache=cache, queries=table)
        narrow = discover(DiscoveryScope(("us-east-1",), "a?b"), run_context, cache=cache, queries=table)

        assert sorted(e.identity for e in wide) == ["vpc-axb", "vpc-axxb"]
        assert [e.identity for e in narrow] == ["vpc-axb"]
        assert len(fakes.calls) == 2

    def test_permuted_inventory_yields_same_catalog(self, foo_inventory, run_context):
        """
        GIVEN the same inventory returned in forward and reversed order
        WHEN discover is called for each
        THEN both catalogs hold the same keys
        """
        forward = FakeQueries(foo_inventory)
        backward = FakeQueries(list(reversed(foo_inventory)))
        scope = DiscoveryScope(("us-east-1",), "foo")

        first = discover(scope, run_context, queries=forward.table([K.NETWORK, K.SUBNET]))
        second = discover(scope, run_context, queries=backward.table([K.NETWORK, K.SUBNET]))

        assert {e.key for e in first} == {e.key for e in second}

    def test_cache_hit_skips_queries(self, foo_inventory, run_context, tmp_path):
        """
        GIVEN a fresh cache entry for the region
        WHEN discover runs again without refresh
        THEN no queries are made; with refresh_cache queries run again
        """
        cache = DiscoveryCache(tmp_path / "cache")
        scope = DiscoveryScope(("us-east-1",), "foo")
        discover(scope, run_context, cache=cache, queries=FakeQueries(foo_inventory).table([K.NETWORK, K.SUBNET]))

        second = FakeQueries(foo_inventory)
        catalog = discover(scope, run_context, cache=cache, queries=second.table([K.NETWORK, K.SUBNET]))

        assert second.calls == []
        assert len(catalog) == 3

        run_context.refresh_cache = True
        third = FakeQueries(foo_inventory)
        discover(scope, run_context, cache=cache, queries=third.table([K.NETWORK, K.SUBNET]))
        assert third.calls != []


@pytest.mark.integration
@pytest.mark.aws
class TestDiscoverOrphans:
    """Test unscoped orphan inventory."""

    def test_regions_are_union_of_sources(self, tmp_path, run_context, resource_builder):
        """
        GIVEN an explicit region, a repository region and a default region
        WHEN discover_orphans is called
        THEN all three regions are scanned and known clusters are reported
        """
        cluster_dir = tmp_path / "repo" / "clusters" / "ocp-01"
        cluster_dir.mkdir(parents=True)
        (cluster_dir / "install-config.yaml").write_text(
            "platform:\n  aws:\n    region: eu-west-1\n"
        )
        run_context.default_regions = ["us-east-1"]
        fakes = FakeQueries(
            [resource_builder(K.NETWORK).with_identity("vpc-eu").in_region("eu-west-1").build()]
        )

        inventory = discover_orphans(
            ["ap-south-1"],
            RepositoryConfig(tmp_path / "repo"),
            run_context,
            queries=fakes.table([K.NETWORK]),
        )

        assert inventory.regions == ["ap-south-1", "eu-west-1", "us-east-1"]
        assert inventory.known_clusters == {"ocp-01"}
        assert [e.identity for e in inventory.catalog] == ["vpc-eu"]
        assert {region for _, region, _ in fakes.calls} == set(inventory.regions)
