"""Configuration from environment variables."""

from __future__ import annotations
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path

# Core configuration
DRY_RUN = os.environ.get("DRY_RUN", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Repository checkout holding clusters/ and regions/
FLEET_REPO_ROOT = os.environ.get("FLEET_REPO_ROOT", ".")

# Discovery cache
FLEET_CACHE_DIR = os.environ.get(
    "FLEET_CACHE_DIR",
    os.path.join(
        os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache")),
        "fleet-reconcile",
    ),
)
FLEET_CACHE_MAX_AGE_SECONDS = int(
    os.environ.get("FLEET_CACHE_MAX_AGE_SECONDS", "3600")
)

# Regions always scanned in orphan discovery
DEFAULT_REGIONS = os.environ.get("DEFAULT_REGIONS", "us-east-1,us-east-2,us-west-2")

# Remediation behaviour
MAX_RETRIES = int(os.environ.get("MAX_RETRIES", "3"))
RETRY_DELAY_SECONDS = float(os.environ.get("RETRY_DELAY_SECONDS", "5"))
WAIT_FOR_DELETION = os.environ.get("WAIT_FOR_DELETION", "true").lower() == "true"

# External calls
API_TIMEOUT_SECONDS = int(os.environ.get("API_TIMEOUT_SECONDS", "30"))
DISCOVERY_WORKERS = int(os.environ.get("DISCOVERY_WORKERS", "8"))

# Cluster hub
GITOPS_NAMESPACE = os.environ.get("GITOPS_NAMESPACE", "openshift-gitops")


def parse_region_list(value: str) -> list[str]:
    """Split a comma separated region list, dropping blanks."""
    return [r.strip() for r in value.split(",") if r.strip()]


class Config:
    """Configuration snapshot for fleet reconciliation."""

    def __init__(self):
        self.dry_run = DRY_RUN
        self.log_level = LOG_LEVEL
        self.repo_root = FLEET_REPO_ROOT
        self.cache_dir = FLEET_CACHE_DIR
        self.cache_max_age_seconds = FLEET_CACHE_MAX_AGE_SECONDS
        self.default_regions = parse_region_list(DEFAULT_REGIONS)
        self.max_retries = MAX_RETRIES
        self.retry_delay_seconds = RETRY_DELAY_SECONDS
        self.wait_for_deletion = WAIT_FOR_DELETION
        self.api_timeout_seconds = API_TIMEOUT_SECONDS
        self.discovery_workers = DISCOVERY_WORKERS
        self.gitops_namespace = GITOPS_NAMESPACE


@dataclass
class RunContext:
    """Everything one reconciliation run needs, passed to each component."""

    regions: list[str] = field(default_factory=list)
    pattern: str = ""
    repo_root: Path = Path(FLEET_REPO_ROOT)
    dry_run: bool = DRY_RUN
    auto_confirm: bool = False
    refresh_cache: bool = False
    cache_dir: Path = Path(FLEET_CACHE_DIR)
    cache_max_age_seconds: int = FLEET_CACHE_MAX_AGE_SECONDS
    default_regions: list[str] = field(
        default_factory=lambda: parse_region_list(DEFAULT_REGIONS)
    )
    max_retries: int = MAX_RETRIES
    retry_delay_seconds: float = RETRY_DELAY_SECONDS
    wait_for_deletion: bool = WAIT_FOR_DELETION
    api_timeout_seconds: int = API_TIMEOUT_SECONDS
    discovery_workers: int = DISCOVERY_WORKERS
    gitops_namespace: str = GITOPS_NAMESPACE
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @classmethod
    def from_config(cls, config: Config, **overrides) -> RunContext:
        """Build a context from a Config snapshot, applying CLI overrides."""
        values = {
            "repo_root": Path(config.repo_root),
            "dry_run": config.dry_run,
            "cache_dir": Path(config.cache_dir),
            "cache_max_age_seconds": config.cache_max_age_seconds,
            "default_regions": list(config.default_regions),
            "max_retries": config.max_retries,
            "retry_delay_seconds": config.retry_delay_seconds,
            "wait_for_deletion": config.wait_for_deletion,
            "api_timeout_seconds": config.api_timeout_seconds,
            "discovery_workers": config.discovery_workers,
            "gitops_namespace": config.gitops_namespace,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["repo_root"] = Path(values["repo_root"])
        return cls(**values)
