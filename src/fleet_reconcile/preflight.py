"""Preflight checks run before any discovery.

Every failure raises FatalPrecondition; the CLI turns it into exit code 2.
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterable

from botocore.exceptions import BotoCoreError, ClientError
from kubernetes import client
from kubernetes.config.config_exception import ConfigException

from .discovery.registration import load_kube_configuration
from .models import FatalPrecondition
from .utils import get_client, get_logger

logger = get_logger()


def check_aws_access(regions: Iterable[str], timeout: int = 30) -> str:
    """Verify credentials work in every target region; returns the account id."""
    account = ""
    for region in regions:
        try:
            identity = get_client("sts", region, timeout).get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise FatalPrecondition(f"AWS credentials unusable in {region}: {e}") from e
        account = identity.get("Account", "")
        logger.debug(
            "AWS access verified",
            extra={"region": region, "account": account, "arn": identity.get("Arn")},
        )
    return account


def check_kube_access(timeout: int = 30) -> None:
    """Load kubeconfig (or in-cluster config) and reach the hub API."""
    try:
        load_kube_configuration()
    except ConfigException as e:
        raise FatalPrecondition(f"No usable kubeconfig: {e}") from e
    try:
        client.CoreV1Api().get_api_resources(_request_timeout=timeout)
    except Exception as e:
        raise FatalPrecondition(f"Cluster hub API unreachable: {e}") from e
    logger.debug("Cluster hub access verified")


def check_repository(root: Path | str) -> Path:
    root = Path(root)
    if not root.is_dir():
        raise FatalPrecondition(f"Repository root {root} is not a directory")
    if not (root / "clusters").is_dir() and not (root / "regions").is_dir():
        raise FatalPrecondition(
            f"Repository root {root} has neither clusters/ nor regions/"
        )
    return root
