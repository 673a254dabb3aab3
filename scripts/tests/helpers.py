"""Shared test factories for pipeline tests.

Provides factory functions for raw battle-log entries (as the Clash Royale
API returns them) plus small fakes for the API client, the clock and a
DynamoDB table.
"""

import copy
import sys
import threading
import zlib
from datetime import datetime, timedelta
from pathlib import Path

# Add scripts/ to path so we can import arena_meta
SCRIPTS_DIR = Path(__file__).resolve().parent.parent
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))


# ─── Decks ──────────────────────────────────────────────────────

DECK_HOG = ["Hog Rider", "Musketeer", "Ice Golem", "Ice Spirit",
            "Skeletons", "Cannon", "Fireball", "The Log"]
DECK_GOLEM = ["Golem", "Night Witch", "Baby Dragon", "Lumberjack",
              "Tornado", "Lightning", "Barbarian Barrel", "Mega Minion"]
DECK_BAIT = ["Goblin Barrel", "Princess", "Goblin Gang", "Knight",
             "Inferno Tower", "Rocket", "The Log", "Ice Spirit"]

# Golem deck averages exactly 4.25
CARD_ITEMS = [
    {"name": "Golem", "elixirCost": 8},
    {"name": "Night Witch", "elixirCost": 4},
    {"name": "Baby Dragon", "elixirCost": 4},
    {"name": "Lumberjack", "elixirCost": 4},
    {"name": "Tornado", "elixirCost": 3},
    {"name": "Lightning", "elixirCost": 6},
    {"name": "Barbarian Barrel", "elixirCost": 2},
    {"name": "Mega Minion", "elixirCost": 3},
    {"name": "Hog Rider", "elixirCost": 4},
    {"name": "The Log", "elixirCost": 2},
]


def card_id(name):
    return 26000000 + zlib.crc32(name.encode("utf-8")) % 100000


def make_card_list(names):
    """API-shaped card entries for a list of names."""
    return [{"name": n, "id": card_id(n), "level": 14} for n in names]


# ─── Raw Battle Factory ─────────────────────────────────────────

def format_battle_time(dt):
    return dt.strftime("%Y%m%dT%H%M%S.000Z")


def make_raw_battle(team_cards=None, opponent_cards=None, team_crowns=1, opponent_crowns=0,
                    arena_id=15, team_tag="#P1", opponent_tag="#O1",
                    battle_time="20260215T120000.000Z",
                    team_overrides=None, opponent_overrides=None, **overrides):
    """Build a valid raw 1v1 battle. Override any top-level field via kwargs.

    The default battle is a 1-0 win for DECK_HOG over DECK_GOLEM in arena 15.
    arena_id=None leaves the arena field out entirely.
    """
    team = {
        "tag": team_tag,
        "name": "Alice",
        "crowns": team_crowns,
        "trophyChange": 30 if team_crowns > opponent_crowns else -30,
        "cards": make_card_list(DECK_HOG if team_cards is None else team_cards),
    }
    opponent = {
        "tag": opponent_tag,
        "name": "Bob",
        "crowns": opponent_crowns,
        "cards": make_card_list(DECK_GOLEM if opponent_cards is None else opponent_cards),
    }
    team.update(team_overrides or {})
    opponent.update(opponent_overrides or {})

    battle = {
        "type": "PvP",
        "battleTime": battle_time,
        "gameMode": {"id": 72000006, "name": "Ladder"},
        "team": [team],
        "opponent": [opponent],
    }
    if arena_id is not None:
        battle["arena"] = {"id": arena_id, "name": f"Arena {arena_id}"}

    battle.update(overrides)
    return battle


def make_battles(n, wins=None, three_crown_wins=0, team_cards=None, opponent_cards=None,
                 team_tag="#P1", arena_id=15, start=datetime(2026, 2, 1, 12, 0)):
    """Generate N raw battles one minute apart.

    Args:
        n: Number of battles
        wins: How many the team wins (default: n//2); the rest are 0-1 losses
        three_crown_wins: How many of those wins are 3-0
        team_tag: Tag of the reporting player; every opponent tag is unique
    """
    if wins is None:
        wins = n // 2

    battles = []
    for i in range(n):
        if i < three_crown_wins:
            crowns = (3, 0)
        elif i < wins:
            crowns = (1, 0)
        else:
            crowns = (0, 1)
        battles.append(make_raw_battle(
            team_cards=team_cards,
            opponent_cards=opponent_cards,
            team_crowns=crowns[0],
            opponent_crowns=crowns[1],
            arena_id=arena_id,
            team_tag=team_tag,
            opponent_tag=f"#OPP{i}",
            battle_time=format_battle_time(start + timedelta(minutes=i)),
        ))
    return battles


def mirror_battle(battle):
    """The same battle as it appears in the opponent's battle log."""
    mirrored = copy.deepcopy(battle)
    mirrored["team"], mirrored["opponent"] = mirrored["opponent"], mirrored["team"]
    return mirrored


# ─── Fakes ──────────────────────────────────────────────────────

class FakeClock:
    """Manual clock; sleep() advances it and records the delay."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def advance(self, seconds):
        with self._lock:
            self.now += seconds

    def sleep(self, seconds):
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds


def no_sleep(seconds):
    pass


class FakeClient:
    """Stand-in for ClashRoyaleClient.

    Every configured value may be an exception instance, which is raised
    instead of returned. battles maps tag → list (or exception).
    """

    def __init__(self, top_players=None, clans=None, members=None, battles=None,
                 cards=None, players=None):
        self.top_players = top_players if top_players is not None else []
        self.clans = clans if clans is not None else []
        self.members = members or {}
        self.battles = battles or {}
        self.cards = cards if cards is not None else []
        self.players = players or {}
        self.calls = []

    @staticmethod
    def _give(value):
        if isinstance(value, Exception):
            raise value
        return value

    def get_top_players(self, scope="global", limit=50):
        self.calls.append(("get_top_players", limit))
        items = self._give(self.top_players)
        return {"items": items}

    def get_clan_rankings(self, scope="global"):
        self.calls.append(("get_clan_rankings", scope))
        return {"items": self._give(self.clans)}

    def get_clan_members(self, clan_tag):
        self.calls.append(("get_clan_members", clan_tag))
        return {"items": self._give(self.members.get(clan_tag, []))}

    def get_battles(self, tag):
        self.calls.append(("get_battles", tag))
        return self._give(self.battles.get(tag, []))

    def get_player(self, tag):
        self.calls.append(("get_player", tag))
        return self._give(self.players.get(tag, {}))

    def get_cards(self):
        self.calls.append(("get_cards", None))
        return {"items": self._give(self.cards)}


def make_leaderboard(n, trophies=7000, prefix="#TOP"):
    return [{"tag": f"{prefix}{i}", "name": f"Top {i}", "trophies": trophies - i} for i in range(n)]


class FakeDynamoTable:
    """In-memory stand-in for a boto3 DynamoDB Table with (pk, sk) keys.

    fail_on_sk: a put of an item whose sk equals it raises RuntimeError.
    """

    def __init__(self, fail_on_sk=None):
        self.items = {}
        self.fail_on_sk = fail_on_sk

    @staticmethod
    def _key(key):
        return (key["pk"], key["sk"])

    def get_item(self, Key):
        item = self.items.get(self._key(Key))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item):
        if self.fail_on_sk is not None and Item["sk"] == self.fail_on_sk:
            raise RuntimeError(f"write of {Item['sk']} failed")
        self.items[self._key(Item)] = copy.deepcopy(Item)

    def delete_item(self, Key):
        self.items.pop(self._key(Key), None)

    def batch_writer(self):
        return _FakeBatch(self)

    def partitions(self):
        return {pk for pk, _ in self.items}


class _FakeBatch:

    def __init__(self, table):
        self.table = table

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def put_item(self, Item):
        self.table.put_item(Item=Item)

    def delete_item(self, Key):
        self.table.delete_item(Key=Key)


# ─── Real Snapshot Loader ───────────────────────────────────────

def load_real_snapshot():
    """Load the currently published JSON snapshot. Returns None if there is none."""
    from arena_meta.snapshots import JsonSnapshotStore
    return JsonSnapshotStore().load_current()
