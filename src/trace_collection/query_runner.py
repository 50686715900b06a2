"""
Cache-checked, throttle-aware execution of a single backend query.
"""

import logging
import threading
from typing import Any, Callable, Optional, Tuple

from .cache import CacheStore, TTL
from .errors import OperationCancelled, SpanQueryError
from .throttle import Throttle

logger = logging.getLogger("query-runner")

Fetch = Callable[[dict], Tuple[Any, Any]]


class QueryRunner:
    """Runs one query: cache lookup, then network call, throttle and cache store."""

    def __init__(self, cache: CacheStore, throttle: Throttle, site: str, cache_ttl: TTL):
        self.cache = cache
        self.throttle = throttle
        self.site = site
        self.cache_ttl = cache_ttl

    def run(self, cache_operation: str, operation: str, fetch: Fetch, body: dict,
            cancel: Optional[threading.Event] = None) -> Any:
        """
        Return the response payload for `body`, from cache when fresh.

        Raises:
            OperationCancelled: `cancel` was set before the network call.
            SpanQueryError: The backend call failed.
        """
        hit, payload = self.cache.get(cache_operation, self.site, body, self.cache_ttl)
        if hit:
            return payload

        self.throttle.wait(cancel)
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"{operation} cancelled")

        logger.debug(f"{operation}: cache miss, querying backend")
        try:
            payload, response = fetch(body)
        except Exception as e:
            raise SpanQueryError(operation, e) from e

        self.cache.set(cache_operation, self.site, body, payload)
        self.throttle.observe(response, cancel)
        return payload
