"""AWS helper functions."""

from __future__ import annotations
import fnmatch
import threading
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .logging_config import get_logger

logger = get_logger()

CLUSTER_TAG_PREFIX = "kubernetes.io/cluster/"

NOT_FOUND_SUFFIXES = (".NotFound", "NotFound", "NotFoundFault", "NotFoundException")
DEPENDENCY_ERROR_CODES = {
    "DependencyViolation",
    "ResourceInUse",
    "ResourceInUseException",
    "InvalidDBInstanceState",
}

_client_lock = threading.Lock()
_clients: dict[tuple[str, str, int], Any] = {}


def get_client(service: str, region: str, timeout: int = 30):
    """Return a shared boto3 client for (service, region).

    Client creation on the default session is not thread-safe; created
    clients are, so discovery workers share them.
    """
    key = (service, region, timeout)
    with _client_lock:
        client = _clients.get(key)
        if client is None:
            client = boto3.client(
                service,
                region_name=region,
                config=BotoConfig(
                    connect_timeout=timeout,
                    read_timeout=timeout,
                    retries={"max_attempts": 3, "mode": "standard"},
                ),
            )
            _clients[key] = client
        return client


def reset_clients() -> None:
    with _client_lock:
        _clients.clear()


def convert_tags_to_dict(tags: list[dict[str, str]] | None) -> dict[str, str]:
    """Convert AWS tag list to dictionary."""
    return {tag["Key"]: tag["Value"] for tag in tags} if tags else {}


def extract_cluster_name(tags_dict: dict[str, str]) -> str | None:
    """Extract cluster infra ID from kubernetes tags."""
    for key in tags_dict.keys():
        if key.startswith(CLUSTER_TAG_PREFIX):
            return key.split("/")[-1]
    return tags_dict.get("aws:eks:cluster-name")


def infra_id_belongs_to(infra_id: str, cluster_name: str) -> bool:
    """Check an infra ID against a cluster name.

    Example: jvp-rosa1-qmdkk belongs to jvp-rosa1
    """
    if infra_id == cluster_name:
        return True
    prefix, _, suffix = infra_id.rpartition("-")
    return prefix == cluster_name and bool(suffix)


def normalize_pattern(pattern: str) -> str:
    """Treat a bare word as a substring match."""
    if any(ch in pattern for ch in "*?["):
        return pattern
    return f"*{pattern}*"


def matches_pattern(
    pattern: str, identity: str, name: str | None, tags_dict: dict[str, str]
) -> bool:
    """Check whether identity, name or any tag key/value references the pattern."""
    if not pattern:
        return True
    glob = normalize_pattern(pattern)
    candidates = [identity, name or ""]
    for key, value in tags_dict.items():
        candidates.append(key)
        candidates.append(value)
    return any(fnmatch.fnmatchcase(c, glob) for c in candidates if c)


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def is_not_found(error: ClientError) -> bool:
    code = error_code(error)
    return any(code.endswith(suffix) for suffix in NOT_FOUND_SUFFIXES)


def is_dependency_violation(error: ClientError) -> bool:
    code = error_code(error)
    if code in DEPENDENCY_ERROR_CODES:
        return True
    message = error.response.get("Error", {}).get("Message", "")
    return "has dependencies" in message or "in use" in message.lower()
