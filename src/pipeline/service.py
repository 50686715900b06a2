#!/usr/bin/env python3
"""
Service Pipeline - Wires configuration, cache, throttle and the Spans API
into a dependency aggregation for one service
"""

import json
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

from trace_collection import (
    Config,
    CacheStore,
    Throttle,
    SpansApiClient,
    QueryRunner,
    TraceCollector,
)
from dependency_analysis import (
    AccurateResult,
    FastResult,
    DependencyAggregator,
    build_dependency_graph,
    resolve_window,
)
from dependency_analysis.dependency_graph import graph_to_node_link

logger = logging.getLogger("service-pipeline")

MODES = ("fast", "accurate")


class ServicePipeline:
    """Runs fast or accurate dependency aggregation for a service"""

    def __init__(self, config: Optional[Config] = None, api=None,
                 throttle: Optional[Throttle] = None, cache: Optional[CacheStore] = None):
        self.config = config or Config()
        self.api = api or SpansApiClient(self.config)
        self.cache = cache or CacheStore(self.config.CACHE_DIR)
        self.throttle = throttle or Throttle(self.config.RATE_LIMIT_COOLDOWN)

        runner = QueryRunner(self.cache, self.throttle, self.config.DD_SITE, self.config.CACHE_TTL)
        collector = TraceCollector(self.api, runner, max_pages=self.config.MAX_PAGES)
        self.aggregator = DependencyAggregator(
            self.api, runner, collector,
            site=self.config.DD_SITE,
            max_workers=self.config.MAX_WORKERS
        )

    def run(self, mode: str, service: str, env: str, endpoint: str = "",
            start: Optional[datetime] = None, end: Optional[datetime] = None,
            cancel: Optional[threading.Event] = None) -> Union[AccurateResult, FastResult]:
        """
        Aggregate dependencies for `service` in `env`.

        Raises:
            ValueError: Unknown mode or missing arguments for the mode.
        """
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}")
        if not service:
            raise ValueError("A service name is required")
        if mode == "accurate" and not endpoint:
            raise ValueError("An endpoint is required in accurate mode")

        start, end = resolve_window(start, end, timedelta(seconds=self.config.LOOPBACK))
        logger.info(f"Mode: {mode} - Service: {service} - Env: {env} - Window: {start.isoformat()} .. {end.isoformat()}")

        if mode == "fast":
            return self.aggregator.aggregate_fast(service, env, start, end, cancel=cancel)

        return self.aggregator.aggregate_accurate(
            service, env, endpoint, start, end,
            page_limit=self.config.PAGE_LIMIT,
            max_traces=self.config.MAX_TRACES,
            cancel=cancel
        )

    @staticmethod
    def render(result: Union[AccurateResult, FastResult]) -> str:
        """Indented JSON for printing"""
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def export_graph(result: Union[AccurateResult, FastResult], output_file: str) -> str:
        """Write the dependency graph in node-link JSON format"""
        graph = build_dependency_graph(result)
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(graph_to_node_link(graph), f, indent=2)
        logger.info(f"Dependency graph saved: {path}")
        return str(path)
