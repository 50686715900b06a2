#!/usr/bin/env python3
"""
Span Dependency Analyzer

Derives service dependencies from Datadog span data.

MODES:
1. Fast
   - One aggregation over all client spans of the service
   - Outgoing resource x peer service counts, approximate

2. Accurate
   - Collects the trace IDs that hit one incoming endpoint
   - Aggregates client spans of the service inside those traces
   - Counts other services taking part in the same traces

Usage Examples:
    python main.py service --service web --env prod
    python main.py service --mode accurate --service web --env prod --endpoint "GET /users"
    python main.py service --mode accurate --service web --env prod --endpoint "GET /users" \
        --max-traces 500 --export-graph output/analysis/web_graph.json

Credentials are read from DD_CLIENT_API_KEY and DD_CLIENT_APP_KEY.
"""

import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from pipeline.cli import main


if __name__ == "__main__":
    sys.exit(main())
