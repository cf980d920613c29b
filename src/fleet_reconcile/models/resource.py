"""ResourceEntity and the closed set of resource kinds."""

from __future__ import annotations
import enum
from dataclasses import dataclass, field, replace
from typing import Any

NO_NAME = "no-name"
HUB_REGION = "global"


class ResourceKind(str, enum.Enum):
    """Resource kinds, declared in teardown order.

    Declaration order is the tie-breaker for dependency ranking, so new
    kinds must be inserted where they belong in teardown.
    """

    LOAD_BALANCER = "load-balancer"
    DATABASE_INSTANCE = "database-instance"
    COMPUTE_INSTANCE = "compute-instance"
    BLOCK_VOLUME = "block-volume"
    SERVICE_ENDPOINT = "service-endpoint"
    NAT_GATEWAY = "nat-gateway"
    ELASTIC_IP = "elastic-ip"
    NETWORK_INTERFACE = "network-interface"
    ROUTE_TABLE = "route-table"
    SECURITY_GROUP = "security-group"
    NETWORK_ACL = "network-acl"
    SUBNET = "subnet"
    INTERNET_GATEWAY = "internet-gateway"
    NETWORK = "network"
    GITOPS_APPLICATION = "gitops-application"
    MANAGED_CLUSTER_REGISTRATION = "managed-cluster-registration"
    NAMESPACE = "namespace"

    @property
    def is_cloud(self) -> bool:
        return self not in HUB_KINDS


HUB_KINDS = frozenset(
    {
        ResourceKind.GITOPS_APPLICATION,
        ResourceKind.MANAGED_CLUSTER_REGISTRATION,
        ResourceKind.NAMESPACE,
    }
)


class Origin(str, enum.Enum):
    """Which source an entity was seen in. Set by the comparator only."""

    DECLARED_ONLY = "declared-only"
    LIVE_ONLY = "live-only"
    BOTH = "both"


@dataclass
class ResourceEntity:
    """A discovered unit of infrastructure or cluster registration.

    ``details`` carries the kind-specific fields (route table routes,
    security group flags, interface attachments, ...).
    """

    kind: ResourceKind
    identity: str
    region: str
    display_name: str | None = None
    container_ref: str | None = None
    lifecycle_state: str = ""
    origin: Origin | None = None
    tags: dict[str, str] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[ResourceKind, str, str]:
        """Catalog key; identity is only unique per (kind, region)."""
        return (self.kind, self.region, self.identity)

    @property
    def label(self) -> str:
        return self.display_name or NO_NAME

    def with_origin(self, origin: Origin) -> ResourceEntity:
        return replace(self, origin=origin)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "identity": self.identity,
            "region": self.region,
            "display_name": self.display_name,
            "container_ref": self.container_ref,
            "lifecycle_state": self.lifecycle_state,
            "origin": self.origin.value if self.origin else None,
            "tags": dict(self.tags),
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceEntity:
        origin = data.get("origin")
        return cls(
            kind=ResourceKind(data["kind"]),
            identity=data["identity"],
            region=data["region"],
            display_name=data.get("display_name"),
            container_ref=data.get("container_ref"),
            lifecycle_state=data.get("lifecycle_state", ""),
            origin=Origin(origin) if origin else None,
            tags=dict(data.get("tags") or {}),
            details=dict(data.get("details") or {}),
        )
