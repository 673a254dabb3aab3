"""
Arena Meta — Data Pipeline

Samples top players' battle logs from the Clash Royale API, aggregates
per-arena deck and matchup statistics, and publishes them as the current
snapshot (JSON files under data/snapshots/ or a DynamoDB table).

Usage:
    python scripts/fetch_meta.py [--players 200] [--store dynamo] [--dry-run]

Environment variables:
    CLASH_ROYALE_API_KEY
    CLASH_ROYALE_API_URL      (optional, defaults to the RoyaleAPI proxy)
    ARENA_META_DATA_DIR       (optional)
    ARENA_META_DYNAMO_TABLE   (only with --store dynamo)
    AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_DEFAULT_REGION
"""

import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from arena_meta.main import main  # noqa: E402

if __name__ == "__main__":
    main()
