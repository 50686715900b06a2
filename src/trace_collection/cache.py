"""
On-disk cache for span query results.

Every entry is one JSON file named after the operation, the site and the
SHA-256 of the canonical request body. Freshness is decided from the file
modification time alone, so there is no metadata file to keep in sync.
"""

import hashlib
import json
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

logger = logging.getLogger("span-cache")

TTL = Union[float, int, timedelta]


def canonical_json(body: Any) -> str:
    """Serialize a request body with stable key order and no whitespace."""
    return json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class CacheStore:
    """TTL-gated, content-addressed cache of query responses."""

    def __init__(self, cache_dir: Union[str, Path], clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self.clock = clock
        # Failing here is fatal for the engine
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, operation: str, site: str, body: Any) -> Path:
        # surrogatepass keeps undecodable argv bytes hashable
        digest = hashlib.sha256(canonical_json(body).encode("utf-8", "surrogatepass")).hexdigest()
        return self.cache_dir / f"{operation}_{site}_{digest}.json"

    def get(self, operation: str, site: str, body: Any, ttl: TTL) -> Tuple[bool, Any]:
        """
        Look up a cached response.

        Args:
            operation: Name of the backend operation (part of the key).
            site: Backend site identifier (part of the key).
            body: Request body; any JSON-serializable structure.
            ttl: Maximum entry age in seconds or as a timedelta.

        Returns:
            Tuple of (hit, value). Missing, stale, unreadable or corrupt
            entries, and bodies that cannot be keyed, all come back as
            (False, None).
        """
        value, error = self._read(operation, site, body, _seconds(ttl))
        if error is not None:
            logger.debug(f"Cache read failed for {operation}: {error}")
            return False, None
        if value is _MISS:
            return False, None
        logger.debug(f"Cache hit: {operation}")
        return True, value

    def set(self, operation: str, site: str, body: Any, value: Any) -> None:
        """Store a response. Failures are logged and otherwise ignored."""
        error = self._write(operation, site, body, value)
        if error is not None:
            logger.debug(f"Cache write failed for {operation}: {error}")

    def _read(self, operation: str, site: str, body: Any, ttl: float) -> Tuple[Any, Optional[Exception]]:
        try:
            path = self.path_for(operation, site, body)
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return _MISS, None
        except (OSError, TypeError, ValueError) as e:
            return _MISS, e

        if self.clock() - mtime > ttl:
            return _MISS, None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f), None
        except (OSError, ValueError) as e:
            return _MISS, e

    def _write(self, operation: str, site: str, body: Any, value: Any) -> Optional[Exception]:
        tmp_name = None
        try:
            path = self.path_for(operation, site, body)
            payload = json.dumps(value, ensure_ascii=False)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            return None
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return e


class _Miss:
    def __repr__(self):
        return "<cache miss>"


_MISS = _Miss()


def _seconds(ttl: TTL) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)
