"""Unit tests for cluster state classification.

Tests classify(), compare() and tag_origins().
"""

from __future__ import annotations
import pytest

from fleet_reconcile.models import (
    Availability,
    IssueTag,
    NamespacePhase,
    Origin,
    RegistrationStatus,
    ResourceKind,
    describe_issues,
)
from fleet_reconcile.reconcile.comparator import classify, compare, tag_origins


@pytest.mark.unit
class TestClassify:
    """Test independent issue predicates."""

    def test_healthy_cluster_is_ok(self, cluster_builder):
        """
        GIVEN a registered, available cluster with repo config
        WHEN classify is called
        THEN no issues should be reported
        """
        issues = classify(cluster_builder("ok").build())

        assert issues == frozenset()
        assert describe_issues(issues) == "OK"

    def test_orphaned_registration_scenario(self, cluster_builder):
        """
        GIVEN a live registration "x" with no repo config, available, no taints
        WHEN classify is called
        THEN only orphaned-registration should be reported
        """
        record = cluster_builder("x").without_repo_config().build()

        assert classify(record) == frozenset({IssueTag.ORPHANED_REGISTRATION})

    def test_missing_registration(self, cluster_builder):
        """
        GIVEN repo config for a cluster with no registration
        WHEN classify is called
        THEN missing-registration should be reported
        """
        record = cluster_builder("new").unregistered().build()

        assert classify(record) == frozenset({IssueTag.MISSING_REGISTRATION})

    def test_stuck_cleanup_scenario(self, cluster_builder):
        """
        GIVEN finalizers, availability false and a terminating namespace
        WHEN classify is called
        THEN stuck-finalizers and stuck-namespace should both be reported
        """
        record = (
            cluster_builder("y")
            .with_finalizers()
            .with_availability(Availability.FALSE)
            .with_namespace_phase(NamespacePhase.TERMINATING)
            .build()
        )

        assert classify(record) == frozenset(
            {IssueTag.STUCK_FINALIZERS, IssueTag.STUCK_NAMESPACE}
        )

    @pytest.mark.parametrize(
        "availability,expected",
        [
            (Availability.TRUE, False),
            (Availability.FALSE, True),
            (Availability.UNKNOWN, True),
        ],
    )
    def test_finalizers_only_stuck_when_not_available(
        self, cluster_builder, availability, expected
    ):
        """
        GIVEN a registration with finalizers
        WHEN availability varies
        THEN stuck-finalizers is reported unless the cluster is available
        """
        record = (
            cluster_builder("z").with_finalizers().with_availability(availability).build()
        )

        assert (IssueTag.STUCK_FINALIZERS in classify(record)) is expected

    def test_tainted_is_not_blocking(self, cluster_builder):
        """
        GIVEN a healthy cluster with a taint
        WHEN classify is called
        THEN tainted is reported and is not a blocking issue
        """
        record = cluster_builder("t").with_taints("unreachable:NoSelect").build()

        issues = classify(record)

        assert issues == frozenset({IssueTag.TAINTED})
        assert not any(tag.is_blocking for tag in issues)

    def test_classification_is_deterministic(self, cluster_builder):
        """
        GIVEN two records built from identical fields
        WHEN classify is called on each
        THEN the classifications should be equal
        """
        first = cluster_builder("d").without_repo_config().with_taints("a:b").build()
        second = cluster_builder("d").without_repo_config().with_taints("a:b").build()

        assert classify(first) == classify(second)
        assert describe_issues(classify(first)) == "orphaned-registration,tainted"


@pytest.mark.unit
class TestCompare:
    """Test union comparison of repository and live clusters."""

    def test_result_covers_union_sorted_by_name(self, cluster_builder):
        """
        GIVEN repo names {b, c} and live records {a, b}
        WHEN compare is called
        THEN records for a, b and c should be returned in name order
        """
        live = [
            cluster_builder("b").build(),
            cluster_builder("a").build(),
        ]

        results = compare({"b", "c"}, live)

        assert [record.name for record, _ in results] == ["a", "b", "c"]

    def test_repo_only_name_defaults_to_not_found(self):
        """
        GIVEN a name declared in the repository with no live record
        WHEN compare is called
        THEN the record defaults to not-found and is missing-registration
        """
        [(record, issues)] = compare({"only-repo"}, [])

        assert record.registration_status is RegistrationStatus.NOT_FOUND
        assert record.availability is Availability.UNKNOWN
        assert record.namespace_phase is NamespacePhase.NOT_FOUND
        assert record.repo_config_present is True
        assert issues == frozenset({IssueTag.MISSING_REGISTRATION})

    def test_repo_presence_comes_from_repository_names(self, cluster_builder):
        """
        GIVEN a live record claiming repo config that the repository lacks
        WHEN compare is called
        THEN repo_config_present is corrected and the record is orphaned
        """
        live = [cluster_builder("stale").build()]

        [(record, issues)] = compare(set(), live)

        assert record.repo_config_present is False
        assert IssueTag.ORPHANED_REGISTRATION in issues


@pytest.mark.unit
class TestTagOrigins:
    """Test origin tagging of discovered entities."""

    def test_cluster_tag_with_infra_suffix_is_both(self, resource_builder):
        """
        GIVEN a VPC tagged with infra id jvp-rosa1-qmdkk
        WHEN the repository declares jvp-rosa1
        THEN the VPC should be tagged as seen in both sources
        """
        vpc = (
            resource_builder(ResourceKind.NETWORK)
            .with_identity("vpc-1")
            .with_cluster_tag("jvp-rosa1-qmdkk")
            .build()
        )

        [tagged] = tag_origins({"jvp-rosa1"}, [vpc])

        assert tagged.origin is Origin.BOTH
        assert vpc.origin is None

    def test_untagged_resource_is_live_only(self, resource_builder):
        """
        GIVEN an instance without cluster tags
        WHEN tag_origins is called
        THEN it is live-only and declared clusters get placeholders
        """
        instance = resource_builder().with_identity("i-1").build()

        tagged = tag_origins({"declared-a"}, [instance])

        assert tagged[0].origin is Origin.LIVE_ONLY
        placeholder = tagged[1]
        assert placeholder.kind is ResourceKind.MANAGED_CLUSTER_REGISTRATION
        assert placeholder.identity == "declared-a"
        assert placeholder.origin is Origin.DECLARED_ONLY

    def test_exact_name_preferred_over_prefix(self, resource_builder):
        """
        GIVEN declared clusters "app" and "app-east"
        WHEN an entity carries infra id "app-east"
        THEN only "app-east" is considered seen
        """
        vpc = (
            resource_builder(ResourceKind.NETWORK)
            .with_identity("vpc-2")
            .with_cluster_tag("app-east")
            .build()
        )

        tagged = tag_origins({"app", "app-east"}, [vpc])

        placeholders = [e.identity for e in tagged if e.origin is Origin.DECLARED_ONLY]
        assert placeholders == ["app"]
