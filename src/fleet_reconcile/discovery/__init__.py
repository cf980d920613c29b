"""Resource catalog builder: AWS, repository and cluster hub sources."""

from .catalog import (
    Catalog,
    DiscoveryScope,
    OrphanInventory,
    discover,
    discover_orphans,
)
from .cache import DiscoveryCache
from .repository import DeclaredCluster, RepositoryConfig
from .registration import ClusterRegistry, RegistrySnapshot

__all__ = [
    "Catalog",
    "DiscoveryScope",
    "OrphanInventory",
    "discover",
    "discover_orphans",
    "DiscoveryCache",
    "DeclaredCluster",
    "RepositoryConfig",
    "ClusterRegistry",
    "RegistrySnapshot",
]
