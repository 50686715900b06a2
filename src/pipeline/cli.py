#!/usr/bin/env python3
"""
CLI Module - Handles command-line interface and argument parsing
"""

import argparse
import logging
import sys
import threading
from typing import Optional

from trace_collection import Config, OperationCancelled
from trace_collection.utils import parse_timestamp

logger = logging.getLogger("cli")


class CLI:
    """Command Line Interface handler"""

    def __init__(self):
        self.parser = self._create_parser()

    def parse_args(self, args: Optional[list] = None):
        """Parse command line arguments"""
        return self.parser.parse_args(args)

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser"""
        parser = argparse.ArgumentParser(
            prog='span-deps',
            description='Span Dependency Analyzer - service dependencies from Datadog spans',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog='''
MODES:
  span-deps service --service web --env prod
      Fast, approximate outgoing dependencies of the whole service

  span-deps service --mode accurate --service web --env prod --endpoint "GET /users"
      Dependencies observed in traces that hit one incoming endpoint
            '''
        )
        parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

        subparsers = parser.add_subparsers(dest='command')
        service = subparsers.add_parser('service', help='Service dependency commands')

        service.add_argument('--site', default=Config.DD_SITE, help='Datadog site')
        service.add_argument('--cache-dir', default=Config.CACHE_DIR, help='Cache directory')
        service.add_argument('--cache-ttl', type=float, default=Config.CACHE_TTL,
                             help='Cache TTL in seconds')
        service.add_argument('--mode', choices=['fast', 'accurate'], default=Config.MODE,
                             help='accurate or fast')
        service.add_argument('--service', required=True, help='Service name')
        service.add_argument('--env', default='', help='Environment name')
        service.add_argument('--endpoint', default='', help='Incoming endpoint (resource name)')
        service.add_argument('--loopback', type=float, default=Config.LOOPBACK,
                             help='Loopback interval in seconds when --from/--to are unset')
        service.add_argument('--from', dest='start', type=parse_timestamp,
                             help='Window start (ISO 8601, UTC if no offset)')
        service.add_argument('--to', dest='end', type=parse_timestamp,
                             help='Window end (ISO 8601, UTC if no offset)')
        service.add_argument('--page-limit', type=int, default=Config.PAGE_LIMIT,
                             help='Spans per search page')
        service.add_argument('--max-traces', type=int, default=Config.MAX_TRACES,
                             help='Maximum number of traces (0 = no limit)')
        service.add_argument('--max-pages', type=int, default=Config.MAX_PAGES,
                             help='Maximum number of search pages')
        service.add_argument('--workers', type=int, default=Config.MAX_WORKERS,
                             help='Parallel chunk queries')
        service.add_argument('--export-graph', metavar='FILE',
                             help='Also write the dependency graph as node-link JSON')

        return parser

    def validate_args(self, args) -> bool:
        """Validate argument combinations"""
        if args.command != 'service':
            logger.error("No command specified. Use --help for usage information.")
            self.parser.print_help()
            return False

        if args.mode == 'accurate' and not args.endpoint:
            logger.error("--endpoint is required in accurate mode")
            return False

        if (args.start is None) != (args.end is None):
            logger.warning("Only one of --from/--to given; using the loopback window instead")

        return True

    def build_config(self, args) -> Config:
        """Config with command-line overrides applied"""
        config = Config()
        config.DD_SITE = args.site
        config.CACHE_DIR = args.cache_dir
        config.CACHE_TTL = args.cache_ttl
        config.MODE = args.mode
        config.LOOPBACK = args.loopback
        config.PAGE_LIMIT = args.page_limit
        config.MAX_TRACES = args.max_traces
        config.MAX_PAGES = args.max_pages
        config.MAX_WORKERS = args.workers
        return config


def main(argv: Optional[list] = None) -> int:
    cli = CLI()
    args = cli.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(name)s - %(levelname)s - %(message)s'
    )

    if not cli.validate_args(args):
        return 1

    # Imported here so that --help works without the HTTP stack
    from pipeline.service import ServicePipeline

    cancel = threading.Event()
    try:
        pipeline = ServicePipeline(cli.build_config(args))
        result = pipeline.run(args.mode, args.service, args.env, args.endpoint,
                              args.start, args.end, cancel=cancel)
        print(pipeline.render(result))

        if args.export_graph:
            pipeline.export_graph(result, args.export_graph)

    except KeyboardInterrupt:
        cancel.set()
        logger.error("Interrupted")
        return 130
    except OperationCancelled as e:
        logger.error(f"Cancelled: {e}")
        return 130
    except Exception as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
