"""Pipeline constants — paths, API/AWS config, arena tables, thresholds."""

import os
from pathlib import Path

# ─── Paths ──────────────────────────────────────────────────────

SCRIPT_DIR = Path(__file__).resolve().parent.parent  # scripts/
PROJECT_DIR = SCRIPT_DIR.parent
DATA_DIR = Path(os.environ.get("ARENA_META_DATA_DIR", PROJECT_DIR / "data"))
SNAPSHOT_DIR = DATA_DIR / "snapshots"
HISTORY_DIR = DATA_DIR / "players"

# Reference CSV (Name, Cost), used when the API card catalog is down
CARDS_CSV = PROJECT_DIR / "cards.csv"

# ─── Clash Royale API ───────────────────────────────────────────

API_BASE_URL = os.environ.get("CLASH_ROYALE_API_URL", "https://proxy.royaleapi.dev/v1")
API_KEY = os.environ.get("CLASH_ROYALE_API_KEY", "")
API_TIMEOUT_SECONDS = 20

# Clan rankings use a location id; "global" maps to the international one
GLOBAL_LOCATION_ID = "57000006"

# ─── AWS / DynamoDB ─────────────────────────────────────────────

DYNAMO_TABLE = os.environ.get("ARENA_META_DYNAMO_TABLE", "arena_meta_snapshots")
DYNAMO_REGION = os.environ.get("AWS_DEFAULT_REGION", "us-east-2")

# Rows per DynamoDB item (items cap at 400 KB)
DYNAMO_CHUNK_SIZE = 200

# ─── Fetch Tuning ───────────────────────────────────────────────

PLAYERS_TO_SAMPLE = 200
BATTLES_PER_PLAYER = 25
FETCH_CONCURRENCY = 5
REQUESTS_PER_SECOND = 20
BACKOFF_BASE_SECONDS = 0.5
MAX_RETRIES = 3

# Seed discovery
LEADERBOARD_LIMIT = 200
CLANS_TO_SCAN = 20
MEMBERS_PER_CLAN = 5
CLAN_FETCH_CONCURRENCY = 3

# ─── Thresholds ─────────────────────────────────────────────────

# Minimum battles for a deck / matchup row to be published
MIN_SAMPLE_SIZE = 50

# Counter query tiers
COUNTER_IDEAL_SAMPLE = 50
COUNTER_IDEAL_MIN_ROWS = 5
COUNTER_FALLBACK_SAMPLE = 10
COUNTER_FALLBACK_MIN_ROWS = 3
COUNTER_MAX_RESULTS = 10
COUNTER_CACHE_TTL_SECONDS = 15 * 60

# Player stats
MIN_CARD_BATTLES = 10
MAX_MATCHUPS = 5

# Card catalog refresh
CARD_INDEX_TTL_SECONDS = 24 * 60 * 60
DEFAULT_AVG_ELIXIR = 3.5

# ─── Arenas ─────────────────────────────────────────────────────

# Arenas 10-20 plus Legendary Arena (54)
LEGENDARY_ARENA = 54
TRACKED_ARENAS = [10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20, LEGENDARY_ARENA]

# Trophy floor → arena id, highest floor first. Below 3000 is untracked.
ARENA_TROPHY_FLOORS = [
    (6600, LEGENDARY_ARENA),
    (6300, 20),
    (6000, 19),
    (5600, 18),
    (5300, 17),
    (5000, 16),
    (4600, 15),
    (4300, 14),
    (4000, 13),
    (3600, 12),
    (3300, 11),
    (3000, 10),
]

# ─── Seasons ────────────────────────────────────────────────────

SEASON_BASE_YEAR = 2016
MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
