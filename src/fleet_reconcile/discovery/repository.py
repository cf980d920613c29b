"""Repository configuration source.

Cluster declarations live in the GitOps repository checkout:

    clusters/<name>/...            deployed cluster (install-config.yaml,
                                   CAPI/EKS manifests carrying the region)
    regions/<region>/<name>/...    declared cluster, not yet generated
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from ..utils import get_logger

logger = get_logger()

SKIPPED_DIRS = {"base", "overlay", "global"}

STATUS_DEPLOYED = "deployed"
STATUS_DECLARED = "declared"


@dataclass(frozen=True)
class DeclaredCluster:
    name: str
    region: str | None
    status: str


def _cluster_dirs(parent: Path) -> Iterator[Path]:
    if not parent.is_dir():
        return
    for child in sorted(parent.iterdir()):
        if child.is_dir() and not child.name.startswith(".") and child.name not in SKIPPED_DIRS:
            yield child


def _region_from_document(doc: Any) -> str | None:
    if not isinstance(doc, dict):
        return None
    platform = doc.get("platform") or {}
    if isinstance(platform, dict) and isinstance(platform.get("aws"), dict):
        region = platform["aws"].get("region")
        if region:
            return str(region)
    spec = doc.get("spec") or {}
    if not isinstance(spec, dict):
        return None
    if spec.get("region"):
        return str(spec["region"])
    # Hive ClusterDeployment
    spec_platform = spec.get("platform") or {}
    if isinstance(spec_platform, dict) and isinstance(spec_platform.get("aws"), dict):
        region = spec_platform["aws"].get("region")
        if region:
            return str(region)
    return None


def _load_documents(path: Path) -> list[Any]:
    try:
        with open(path) as f:
            return [doc for doc in yaml.safe_load_all(f) if doc is not None]
    except (OSError, yaml.YAMLError) as e:
        logger.warning(
            "Skipping unreadable manifest",
            extra={"path": str(path), "error": str(e)},
        )
        return []


def detect_region(cluster_dir: Path) -> str | None:
    """Find the cluster region, preferring install-config.yaml."""
    install_config = cluster_dir / "install-config.yaml"
    candidates = [install_config] if install_config.exists() else []
    candidates += sorted(
        p
        for p in cluster_dir.rglob("*")
        if p.is_file() and p != install_config and p.suffix in (".yaml", ".yml")
    )
    for path in candidates:
        for doc in _load_documents(path):
            region = _region_from_document(doc)
            if region:
                return region
    return None


class RepositoryConfig:
    """Enumerates (name, region, status) for every cluster the repo knows."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def clusters(self) -> list[DeclaredCluster]:
        found: dict[str, DeclaredCluster] = {}

        for cluster_dir in _cluster_dirs(self.root / "clusters"):
            found[cluster_dir.name] = DeclaredCluster(
                name=cluster_dir.name,
                region=detect_region(cluster_dir),
                status=STATUS_DEPLOYED,
            )

        for region_dir in _cluster_dirs(self.root / "regions"):
            for cluster_dir in _cluster_dirs(region_dir):
                if cluster_dir.name in found:
                    continue
                found[cluster_dir.name] = DeclaredCluster(
                    name=cluster_dir.name,
                    region=region_dir.name,
                    status=STATUS_DECLARED,
                )

        return [found[name] for name in sorted(found)]

    def cluster_names(self) -> set[str]:
        return {cluster.name for cluster in self.clusters()}

    def regions(self) -> set[str]:
        return {cluster.region for cluster in self.clusters() if cluster.region}
