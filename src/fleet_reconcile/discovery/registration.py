"""Cluster registration adapter (ACM ManagedClusters, namespaces, ArgoCD apps)."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from ..models import (
    Availability,
    ClusterRecord,
    HUB_REGION,
    NamespacePhase,
    RegistrationStatus,
    ResourceEntity,
    ResourceKind,
    RunContext,
)
from ..utils import QueryResult, QueryWarning, get_logger

logger = get_logger()

MANAGED_CLUSTER_GROUP = "cluster.open-cluster-management.io"
MANAGED_CLUSTER_VERSION = "v1"
MANAGED_CLUSTER_PLURAL = "managedclusters"

APPLICATION_GROUP = "argoproj.io"
APPLICATION_VERSION = "v1alpha1"
APPLICATION_PLURAL = "applications"

AVAILABLE_CONDITION = "ManagedClusterConditionAvailable"

# Never reported as fleet members
LOCAL_CLUSTER = "local-cluster"


def load_kube_configuration() -> None:
    """Load kubeconfig, falling back to the in-cluster service account."""
    try:
        config.load_kube_config()
    except ConfigException:
        config.load_incluster_config()


def parse_availability(managed_cluster: dict[str, Any]) -> Availability:
    for condition in managed_cluster.get("status", {}).get("conditions", []) or []:
        if condition.get("type") == AVAILABLE_CONDITION:
            status = str(condition.get("status", "")).lower()
            if status == "true":
                return Availability.TRUE
            if status == "false":
                return Availability.FALSE
            return Availability.UNKNOWN
    return Availability.UNKNOWN


def parse_taints(managed_cluster: dict[str, Any]) -> frozenset[str]:
    taints = set()
    for taint in managed_cluster.get("spec", {}).get("taints", []) or []:
        key = taint.get("key", "")
        value = taint.get("value")
        effect = taint.get("effect", "")
        taints.add(f"{key}={value}:{effect}" if value else f"{key}:{effect}")
    return frozenset(taints)


def application_entity(app: dict[str, Any]) -> ResourceEntity:
    metadata = app.get("metadata", {})
    spec = app.get("spec", {})
    status = app.get("status", {}) or {}
    destination = spec.get("destination", {}) or {}
    return ResourceEntity(
        kind=ResourceKind.GITOPS_APPLICATION,
        identity=metadata.get("name", ""),
        region=HUB_REGION,
        display_name=metadata.get("name"),
        container_ref=destination.get("name") or destination.get("server"),
        lifecycle_state="deleting" if metadata.get("deletionTimestamp") else "active",
        tags=dict(metadata.get("labels") or {}),
        details={
            "namespace": metadata.get("namespace"),
            "sync_status": (status.get("sync") or {}).get("status", "Unknown"),
            "health_status": (status.get("health") or {}).get("status", "Unknown"),
            "finalizers": list(metadata.get("finalizers") or []),
        },
    )


def application_targets(app: ResourceEntity, cluster_name: str) -> bool:
    destination = app.container_ref or ""
    return destination == cluster_name or f"api.{cluster_name}." in destination


@dataclass
class RegistrySnapshot:
    """ClusterRecords for one pass, plus whatever could not be read."""

    records: list[ClusterRecord] = field(default_factory=list)
    warnings: list[QueryWarning] = field(default_factory=list)
    registrations_complete: bool = True


class ClusterRegistry:
    """Reads and mutates registration state on the hub cluster."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        core_api: client.CoreV1Api,
        gitops_namespace: str = "openshift-gitops",
        timeout: int = 30,
    ):
        self.custom_api = custom_api
        self.core_api = core_api
        self.gitops_namespace = gitops_namespace
        self.timeout = timeout

    @classmethod
    def from_context(cls, context: RunContext) -> ClusterRegistry:
        load_kube_configuration()
        return cls(
            client.CustomObjectsApi(),
            client.CoreV1Api(),
            gitops_namespace=context.gitops_namespace,
            timeout=context.api_timeout_seconds,
        )

    # ----- reads -----

    def list_registrations(self) -> QueryResult[dict[str, Any]]:
        try:
            response = self.custom_api.list_cluster_custom_object(
                MANAGED_CLUSTER_GROUP,
                MANAGED_CLUSTER_VERSION,
                MANAGED_CLUSTER_PLURAL,
                _request_timeout=self.timeout,
            )
        except Exception as e:
            return QueryResult.failure(e)
        return QueryResult.success(
            [
                item
                for item in response.get("items", [])
                if item.get("metadata", {}).get("name") != LOCAL_CLUSTER
            ]
        )

    def namespace_phase(self, name: str) -> QueryResult[NamespacePhase]:
        try:
            namespace = self.core_api.read_namespace(name, _request_timeout=self.timeout)
        except ApiException as e:
            if e.status == 404:
                return QueryResult.success([NamespacePhase.NOT_FOUND])
            return QueryResult.failure(e)
        except Exception as e:
            return QueryResult.failure(e)

        phase = (getattr(namespace.status, "phase", None) or "").lower()
        if phase == "terminating":
            return QueryResult.success([NamespacePhase.TERMINATING])
        return QueryResult.success([NamespacePhase.ACTIVE])

    def list_applications(self) -> QueryResult[ResourceEntity]:
        try:
            response = self.custom_api.list_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                self.gitops_namespace,
                APPLICATION_PLURAL,
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            # GitOps operator not installed
            if e.status == 404:
                return QueryResult.success([])
            return QueryResult.failure(e)
        except Exception as e:
            return QueryResult.failure(e)
        return QueryResult.success(
            [application_entity(app) for app in response.get("items", [])]
        )

    def build_records(
        self, repo_clusters: dict[str, str | None] | set[str]
    ) -> RegistrySnapshot:
        """Build one ClusterRecord per name known to either source.

        ``repo_clusters`` maps cluster name to declared region (a plain set
        of names is accepted too).
        """
        declared = (
            dict(repo_clusters)
            if isinstance(repo_clusters, dict)
            else {name: None for name in repo_clusters}
        )
        snapshot = RegistrySnapshot()

        registrations = self.list_registrations()
        if not registrations.ok:
            snapshot.registrations_complete = False
            snapshot.warnings.append(
                QueryWarning(MANAGED_CLUSTER_PLURAL, HUB_REGION, registrations.error or "")
            )
            logger.warning(
                "Failed to list cluster registrations",
                extra={"error": registrations.error},
            )

        applications = self.list_applications()
        if not applications.ok:
            snapshot.warnings.append(
                QueryWarning(APPLICATION_PLURAL, HUB_REGION, applications.error or "")
            )
            logger.warning(
                "Failed to list GitOps applications",
                extra={"error": applications.error},
            )

        live = {item["metadata"]["name"]: item for item in registrations.items}

        for name in sorted(set(live) | set(declared)):
            phase_result = self.namespace_phase(name)
            if phase_result.ok:
                phase = phase_result.items[0]
            else:
                phase = NamespacePhase.NOT_FOUND
                snapshot.warnings.append(
                    QueryWarning(f"namespace/{name}", HUB_REGION, phase_result.error or "")
                )

            managed_cluster = live.get(name)
            apps = tuple(
                app for app in applications.items if application_targets(app, name)
            )
            if managed_cluster is None:
                record = ClusterRecord(
                    name=name,
                    declared_region=declared.get(name),
                    namespace_phase=phase,
                    repo_config_present=name in declared,
                    applications=apps,
                )
            else:
                record = ClusterRecord(
                    name=name,
                    declared_region=declared.get(name),
                    registration_status=RegistrationStatus.EXISTS,
                    availability=parse_availability(managed_cluster),
                    has_finalizers=bool(
                        managed_cluster.get("metadata", {}).get("finalizers")
                    ),
                    taints=parse_taints(managed_cluster),
                    namespace_phase=phase,
                    repo_config_present=name in declared,
                    applications=apps,
                )
            snapshot.records.append(record)

        logger.info(
            "Cluster registration snapshot built",
            extra={
                "records": len(snapshot.records),
                "registrations": len(live),
                "applications": len(applications.items),
                "warnings": len(snapshot.warnings),
            },
        )
        return snapshot

    # ----- writes -----

    def patch_finalizers(
        self, kind: ResourceKind, name: str, namespace: str | None = None
    ) -> None:
        """Remove every finalizer from a registration, application or namespace."""
        body = {"metadata": {"finalizers": []}}
        if kind is ResourceKind.MANAGED_CLUSTER_REGISTRATION:
            self.custom_api.patch_cluster_custom_object(
                MANAGED_CLUSTER_GROUP,
                MANAGED_CLUSTER_VERSION,
                MANAGED_CLUSTER_PLURAL,
                name,
                body,
                _request_timeout=self.timeout,
            )
        elif kind is ResourceKind.GITOPS_APPLICATION:
            self.custom_api.patch_namespaced_custom_object(
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                namespace or self.gitops_namespace,
                APPLICATION_PLURAL,
                name,
                body,
                _request_timeout=self.timeout,
            )
        elif kind is ResourceKind.NAMESPACE:
            ns = self.core_api.read_namespace(name, _request_timeout=self.timeout)
            if ns.metadata is not None and ns.metadata.finalizers:
                self.core_api.patch_namespace(name, body, _request_timeout=self.timeout)
            if ns.spec is not None and ns.spec.finalizers:
                ns.spec.finalizers = []
                self.core_api.replace_namespace_finalize(
                    name, ns, _request_timeout=self.timeout
                )
        else:
            raise ValueError(f"Cannot patch finalizers on {kind.value}")

    def clear_taints(self, name: str) -> None:
        self.custom_api.patch_cluster_custom_object(
            MANAGED_CLUSTER_GROUP,
            MANAGED_CLUSTER_VERSION,
            MANAGED_CLUSTER_PLURAL,
            name,
            {"spec": {"taints": []}},
            _request_timeout=self.timeout,
        )

    def delete_registration(self, name: str) -> None:
        self.custom_api.delete_cluster_custom_object(
            MANAGED_CLUSTER_GROUP,
            MANAGED_CLUSTER_VERSION,
            MANAGED_CLUSTER_PLURAL,
            name,
            _request_timeout=self.timeout,
        )
