"""Parsing & cleaning — raw battle-log entries into clean battle dicts.

parse_battle() is parse-or-reject: it returns a ParseResult carrying either
the clean battle or the name of the reason it was rejected, so callers can
tally skips instead of guessing why a field was missing.
"""

import math
from collections import namedtuple
from datetime import datetime, timezone

from arena_meta.constants import ARENA_TROPHY_FLOORS, LEGENDARY_ARENA
from arena_meta.decks import normalize_card_key

ParseResult = namedtuple("ParseResult", ["value", "reason"])

DECK_SIZE = 8

# Rejection reasons
MISSING_SIDES = "missing_sides"
WRONG_SIDE_COUNT = "wrong_side_count"
INVALID_TEAM_DECK = "invalid_team_deck"
INVALID_OPPONENT_DECK = "invalid_opponent_deck"
NO_ARENA = "no_arena"


def accept(value):
    return ParseResult(value, None)


def reject(reason):
    return ParseResult(None, reason)


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# ─── Arenas ─────────────────────────────────────────────────────

def map_arena_id(arena_id):
    """Map a provider arena id to a tracked arena.

    Below 10 is untracked (None); anything above 20 is Legendary Arena.
    """
    if not is_number(arena_id):
        return None
    if arena_id < 10:
        return None
    if arena_id > 20:
        return LEGENDARY_ARENA
    return int(arena_id)


def arena_id_from_trophies(trophies):
    """Approximate arena from a trophy count via the fixed threshold table."""
    if not is_number(trophies):
        return None
    for floor, arena_id in ARENA_TROPHY_FLOORS:
        if trophies >= floor:
            return arena_id
    return None


def side_trophies(entry):
    """Starting trophies of a battle side, falling back to current trophies."""
    if not isinstance(entry, dict):
        return None
    for key in ("startingTrophies", "trophies"):
        if is_number(entry.get(key)):
            return entry[key]
    return None


def battle_arena_id(battle, fallback_arena=None):
    """Explicit battle arena if tracked, else team trophies, else the fallback.

    An explicit arena outside the tracked range goes straight to the
    fallback; trophies are only consulted when the battle names no arena.
    """
    arena = battle.get("arena")
    if isinstance(arena, dict) and is_number(arena.get("id")):
        mapped = map_arena_id(arena["id"])
        return fallback_arena if mapped is None else mapped

    team = battle.get("team")
    if isinstance(team, list) and team:
        from_trophies = arena_id_from_trophies(side_trophies(team[0]))
        if from_trophies is not None:
            return from_trophies

    return fallback_arena


# ─── Sides ──────────────────────────────────────────────────────

def card_names(entry):
    """Trimmed, non-empty card names of a battle side, in payload order."""
    cards = entry.get("cards") if isinstance(entry, dict) else None
    names = []
    for card in cards if isinstance(cards, list) else []:
        name = card.get("name") if isinstance(card, dict) else None
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


def extract_deck_cards(entry):
    """Card names of a side if it holds exactly 8 unique cards, else None."""
    names = card_names(entry)
    if len(names) != DECK_SIZE:
        return None
    if len({normalize_card_key(n) for n in names}) != DECK_SIZE:
        return None
    return names


def get_crowns(entry):
    crowns = entry.get("crowns") if isinstance(entry, dict) else None
    return crowns if is_number(crowns) else 0


def outcome_of(crowns, opponent_crowns):
    if crowns > opponent_crowns:
        return "win"
    if crowns < opponent_crowns:
        return "loss"
    return "draw"


# ─── Timestamps ─────────────────────────────────────────────────

def parse_battle_time(value):
    """Parse a battle timestamp into an aware UTC datetime. None if unparseable.

    Accepts the provider's compact '20260215T123456.000Z', ISO-8601 strings,
    and datetime objects (naive ones are taken as UTC).
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        dt = None
        for fmt in ("%Y%m%dT%H%M%S.%fZ", "%Y%m%dT%H%M%SZ"):
            try:
                dt = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue
        if dt is None:
            try:
                dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ─── Battle ─────────────────────────────────────────────────────

def parse_battle(battle, fallback_arena=None):
    """Clean one 1v1 battle for aggregation.

    Requires exactly one team and one opponent entry, each with 8 unique
    cards, and a resolvable arena.
    """
    if not isinstance(battle, dict):
        return reject(MISSING_SIDES)
    team = battle.get("team")
    opponent = battle.get("opponent")
    if not isinstance(team, list) or not isinstance(opponent, list):
        return reject(MISSING_SIDES)
    if len(team) != 1 or len(opponent) != 1:
        return reject(WRONG_SIDE_COUNT)

    team_cards = extract_deck_cards(team[0])
    if team_cards is None:
        return reject(INVALID_TEAM_DECK)
    opponent_cards = extract_deck_cards(opponent[0])
    if opponent_cards is None:
        return reject(INVALID_OPPONENT_DECK)

    arena_id = battle_arena_id(battle, fallback_arena)
    if arena_id is None:
        return reject(NO_ARENA)

    trophy_change = team[0].get("trophyChange") if isinstance(team[0], dict) else None
    return accept({
        "arena_id": arena_id,
        "team_cards": team_cards,
        "opponent_cards": opponent_cards,
        "team_crowns": get_crowns(team[0]),
        "opponent_crowns": get_crowns(opponent[0]),
        "team_trophy_change": trophy_change if is_number(trophy_change) else None,
        "battle_time": parse_battle_time(battle.get("battleTime")),
    })
