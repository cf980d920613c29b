"""On-disk discovery cache keyed by (pattern, region)."""

from __future__ import annotations
import datetime
import hashlib
import json
import os
import re
import tempfile
from pathlib import Path

from ..models import ResourceEntity
from ..utils import get_logger

logger = get_logger()

CACHE_FORMAT_VERSION = 1
UNSCOPED_KEY = "all"


def cache_key(pattern: str, region: str) -> str:
    """File-name safe key for a (pattern, region) pair.

    Patterns that slug alike (``a*b``, ``a?b``) differ in the digest.
    """
    if not pattern:
        return f"{UNSCOPED_KEY}__{region}"
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", pattern)
    digest = hashlib.sha256(pattern.encode("utf-8")).hexdigest()[:12]
    return f"{slug}-{digest}__{region}"


class DiscoveryCache:
    """Read-through cache of raw discovery catalogs.

    Each (pattern, region) slice is its own file, so reading one pattern
    never waits on discovery of another.
    """

    def __init__(self, directory: Path | str, max_age_seconds: int = 3600):
        self.directory = Path(directory)
        self.max_age_seconds = max_age_seconds

    def path_for(self, pattern: str, region: str) -> Path:
        return self.directory / f"{cache_key(pattern, region)}.json"

    def load(self, pattern: str, region: str) -> list[ResourceEntity] | None:
        """Return cached entities, or None on a miss or a stale entry."""
        path = self.path_for(pattern, region)
        if not path.exists():
            return None

        try:
            with open(path) as f:
                data = json.load(f)
            created_at = datetime.datetime.fromisoformat(data["created_at"])
            if data.get("version") != CACHE_FORMAT_VERSION:
                return None
            if data.get("pattern") != pattern or data.get("region") != region:
                logger.warning(
                    "Cache entry belongs to another slice",
                    extra={
                        "path": str(path),
                        "pattern": pattern,
                        "stored_pattern": data.get("pattern"),
                    },
                )
                return None
        except (OSError, ValueError, KeyError) as e:
            logger.warning(
                "Ignoring unreadable cache entry",
                extra={"path": str(path), "error": str(e)},
            )
            return None

        age = datetime.datetime.now(datetime.timezone.utc) - created_at
        if age.total_seconds() > self.max_age_seconds:
            logger.info(
                "Cache entry expired",
                extra={
                    "pattern": pattern,
                    "region": region,
                    "age_seconds": round(age.total_seconds(), 1),
                },
            )
            return None

        entities = [ResourceEntity.from_dict(item) for item in data["entities"]]
        logger.info(
            "Loaded discovery slice from cache",
            extra={"pattern": pattern, "region": region, "entities": len(entities)},
        )
        return entities

    def store(self, pattern: str, region: str, entities: list[ResourceEntity]) -> None:
        """Atomically write a slice; a failed write only logs a warning."""
        payload = {
            "version": CACHE_FORMAT_VERSION,
            "pattern": pattern,
            "region": region,
            "created_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "entities": [entity.to_dict() for entity in entities],
        }
        path = self.path_for(pattern, region)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to write discovery cache",
                extra={"path": str(path), "error": str(e)},
            )
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
