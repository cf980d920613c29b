"""Pytest configuration and shared fixtures for fleet reconciliation tests."""

from __future__ import annotations
import pytest
from typing import Any

import freezegun

# kubernetes.client lazily imports pydantic models on attribute access, which
# breaks when freezegun scans modules while datetime is patched.
freezegun.configure(extend_ignore_list=["kubernetes"])

from fleet_reconcile.models import (
    Availability,
    ClusterRecord,
    HUB_REGION,
    NamespacePhase,
    RegistrationStatus,
    ResourceEntity,
    ResourceKind,
    RunContext,
)


class ResourceBuilder:
    """Builder pattern for creating test ResourceEntity values.

    Defaults to a running compute instance in us-east-1.
    """

    def __init__(self, kind: ResourceKind = ResourceKind.COMPUTE_INSTANCE):
        self._fields: dict[str, Any] = {
            "kind": kind,
            "identity": "i-test123456",
            "region": "us-east-1",
            "display_name": None,
            "container_ref": None,
            "lifecycle_state": "",
            "tags": {},
            "details": {},
        }

    def of_kind(self, kind: ResourceKind) -> ResourceBuilder:
        self._fields["kind"] = kind
        return self

    def with_identity(self, identity: str) -> ResourceBuilder:
        self._fields["identity"] = identity
        return self

    def in_region(self, region: str) -> ResourceBuilder:
        self._fields["region"] = region
        return self

    def with_name(self, name: str) -> ResourceBuilder:
        """Set display name and Name tag."""
        self._fields["display_name"] = name
        self._fields["tags"]["Name"] = name
        return self

    def in_network(self, vpc_id: str) -> ResourceBuilder:
        self._fields["container_ref"] = vpc_id
        return self

    def with_state(self, state: str) -> ResourceBuilder:
        self._fields["lifecycle_state"] = state
        return self

    def with_tag(self, key: str, value: str) -> ResourceBuilder:
        self._fields["tags"][key] = value
        return self

    def with_cluster_tag(self, infra_id: str) -> ResourceBuilder:
        """Add the kubernetes.io/cluster/<infra-id> ownership tag."""
        self._fields["tags"][f"kubernetes.io/cluster/{infra_id}"] = "owned"
        return self

    def with_details(self, **details: Any) -> ResourceBuilder:
        self._fields["details"].update(details)
        return self

    def build(self) -> ResourceEntity:
        fields = dict(self._fields)
        fields["tags"] = dict(fields["tags"])
        fields["details"] = dict(fields["details"])
        return ResourceEntity(**fields)


class ClusterRecordBuilder:
    """Builder for ClusterRecord; defaults to a healthy registered cluster."""

    def __init__(self, name: str = "test-cluster"):
        self._fields: dict[str, Any] = {
            "name": name,
            "declared_region": "us-east-1",
            "registration_status": RegistrationStatus.EXISTS,
            "availability": Availability.TRUE,
            "has_finalizers": False,
            "taints": frozenset(),
            "namespace_phase": NamespacePhase.ACTIVE,
            "repo_config_present": True,
            "applications": (),
        }

    def named(self, name: str) -> ClusterRecordBuilder:
        self._fields["name"] = name
        return self

    def unregistered(self) -> ClusterRecordBuilder:
        self._fields["registration_status"] = RegistrationStatus.NOT_FOUND
        self._fields["availability"] = Availability.UNKNOWN
        return self

    def without_repo_config(self) -> ClusterRecordBuilder:
        self._fields["repo_config_present"] = False
        return self

    def with_availability(self, availability: Availability) -> ClusterRecordBuilder:
        self._fields["availability"] = availability
        return self

    def with_finalizers(self) -> ClusterRecordBuilder:
        self._fields["has_finalizers"] = True
        return self

    def with_taints(self, *taints: str) -> ClusterRecordBuilder:
        self._fields["taints"] = frozenset(taints)
        return self

    def with_namespace_phase(self, phase: NamespacePhase) -> ClusterRecordBuilder:
        self._fields["namespace_phase"] = phase
        return self

    def with_application(
        self, name: str, finalizers: list[str] | None = None
    ) -> ClusterRecordBuilder:
        app = ResourceEntity(
            kind=ResourceKind.GITOPS_APPLICATION,
            identity=name,
            region=HUB_REGION,
            display_name=name,
            container_ref=self._fields["name"],
            details={
                "namespace": "openshift-gitops",
                "sync_status": "Synced",
                "health_status": "Healthy",
                "finalizers": list(finalizers or []),
            },
        )
        self._fields["applications"] = self._fields["applications"] + (app,)
        return self

    def build(self) -> ClusterRecord:
        return ClusterRecord(**self._fields)


# Shared fixtures


@pytest.fixture
def resource_builder():
    """Fixture that returns a new ResourceBuilder factory."""
    return ResourceBuilder


@pytest.fixture
def cluster_builder():
    """Fixture that returns a new ClusterRecordBuilder factory."""
    return ClusterRecordBuilder


@pytest.fixture
def run_context(tmp_path):
    """RunContext with no retry delay, no waiters and a private cache dir."""
    return RunContext(
        regions=["us-east-1"],
        repo_root=tmp_path / "repo",
        dry_run=False,
        cache_dir=tmp_path / "cache",
        default_regions=["us-east-1"],
        max_retries=3,
        retry_delay_seconds=0,
        wait_for_deletion=False,
        api_timeout_seconds=5,
        discovery_workers=4,
    )


@pytest.fixture
def vpc_teardown_entities(resource_builder):
    """Network with two security groups and one subnet."""
    return [
        resource_builder(ResourceKind.NETWORK).with_identity("vpc-1").build(),
        resource_builder(ResourceKind.SUBNET)
        .with_identity("subnet-1")
        .in_network("vpc-1")
        .build(),
        resource_builder(ResourceKind.SECURITY_GROUP)
        .with_identity("sg-2")
        .in_network("vpc-1")
        .with_details(group_name="workers", is_default=False, has_rules=True)
        .build(),
        resource_builder(ResourceKind.SECURITY_GROUP)
        .with_identity("sg-1")
        .in_network("vpc-1")
        .with_details(group_name="masters", is_default=False, has_rules=True)
        .build(),
    ]
