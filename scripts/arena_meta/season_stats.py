"""Season stats — one player's battle history bucketed by season.

Seasons are calendar months numbered from January 2016 (season 1). Every
function here is pure; rows are recomputed from history on each request.
"""

from datetime import datetime, timezone

from arena_meta.cleaning import (
    accept, reject, is_number, arena_id_from_trophies, side_trophies, card_names, get_crowns,
    outcome_of, parse_battle_time,
)
from arena_meta.constants import SEASON_BASE_YEAR, MONTH_LABELS, MIN_CARD_BATTLES, MAX_MATCHUPS
from arena_meta.decks import normalize_deck_key, deck_cards_from_key, classify_archetype

# Rejection reasons
MISSING_TEAM = "missing_team"
MISSING_CARDS = "missing_cards"
BAD_TIMESTAMP = "bad_timestamp"

UNKNOWN_ARCHETYPE = "Unknown"


# ─── Seasons ────────────────────────────────────────────────────

def season_of(date):
    """(year - 2016) * 12 + month, using the UTC calendar date."""
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return (date.year - SEASON_BASE_YEAR) * 12 + date.month


def current_season(now=None):
    return season_of(now or datetime.now(timezone.utc))


def season_label(season):
    """Human label for a season number, e.g. 122 → 'Feb 2026'."""
    month_index = (season - 1) % 12
    year = SEASON_BASE_YEAR + (season - 1) // 12
    return f"{MONTH_LABELS[month_index]} {year}"


def _pct(part, whole):
    return round(part / whole * 100, 1) if whole > 0 else 0


# ─── Battle extraction ──────────────────────────────────────────

def player_arena_id(battle, team_entry):
    """Arena id as the provider reports it, else inferred from trophies.

    Player history keeps the raw id; it is not folded into the tracked set.
    """
    arena = battle.get("arena")
    if isinstance(arena, dict) and is_number(arena.get("id")):
        return arena["id"]
    return arena_id_from_trophies(side_trophies(team_entry))


def extract_battle_data(battle):
    """Parse one raw battle from the player's own perspective.

    Returns ParseResult(record, None) or ParseResult(None, reason) when the
    team side is missing, the player's deck is empty, or the timestamp can't
    be parsed. The opponent deck may be empty (archetype "Unknown").
    """
    if not isinstance(battle, dict):
        return reject(MISSING_TEAM)
    team = battle.get("team")
    opponent = battle.get("opponent")
    if not isinstance(team, list) or not isinstance(opponent, list) or not team or not opponent:
        return reject(MISSING_TEAM)

    cards = card_names(team[0])
    if not cards:
        return reject(MISSING_CARDS)
    opponent_cards = card_names(opponent[0])

    battle_time = parse_battle_time(battle.get("battleTime"))
    if battle_time is None:
        return reject(BAD_TIMESTAMP)

    crowns = get_crowns(team[0])
    opponent_crowns = get_crowns(opponent[0])
    return accept({
        "deck_key": normalize_deck_key(cards),
        "cards": cards,
        "result": outcome_of(crowns, opponent_crowns),
        "crowns": crowns,
        "opponent_crowns": opponent_crowns,
        "opponent_cards": opponent_cards,
        "opponent_deck_key": normalize_deck_key(opponent_cards),
        "opponent_archetype": classify_archetype(opponent_cards) if opponent_cards else UNKNOWN_ARCHETYPE,
        "arena_id": player_arena_id(battle, team[0]),
        "season": season_of(battle_time),
        "battle_time": battle_time,
    })


# ─── Aggregation ────────────────────────────────────────────────

def process_battle_stats(battles, skip_log=None):
    """Fold raw battles into per-(season, deck) and per-(season, card) rows.

    Deck rows carry a nested opponent_archetypes tally:
    {archetype: {"battles": n, "wins": n}}.
    """
    decks = {}
    cards = {}

    for raw in battles or []:
        parsed = extract_battle_data(raw)
        if parsed.reason:
            if skip_log is not None:
                skip_log.append(parsed.reason)
            continue
        b = parsed.value
        won = b["result"] == "win"

        deck = decks.setdefault((b["season"], b["deck_key"]), {
            "season": b["season"],
            "deck_key": b["deck_key"],
            "battles": 0, "wins": 0, "three_crowns": 0,
            "opponent_archetypes": {},
        })
        deck["battles"] += 1
        if won:
            deck["wins"] += 1
            if b["crowns"] >= 3:
                deck["three_crowns"] += 1
        arch = deck["opponent_archetypes"].setdefault(b["opponent_archetype"], {"battles": 0, "wins": 0})
        arch["battles"] += 1
        if won:
            arch["wins"] += 1

        for card in b["cards"]:
            row = cards.setdefault((b["season"], card), {
                "season": b["season"], "card_id": card, "battles": 0, "wins": 0,
            })
            row["battles"] += 1
            if won:
                row["wins"] += 1

    return {"deck_stats": list(decks.values()), "card_stats": list(cards.values())}


def compute_card_win_rates(card_rows, min_battles=MIN_CARD_BATTLES, season=None):
    """Per-card win rates, one season or all seasons summed, best first.

    Cards with fewer than min_battles battles are dropped.
    """
    totals = {}
    for row in card_rows:
        if season is not None and row["season"] != season:
            continue
        t = totals.setdefault(row["card_id"], {"battles": 0, "wins": 0})
        t["battles"] += row["battles"]
        t["wins"] += row["wins"]

    results = [
        {"card_id": card_id, "battles": t["battles"], "wins": t["wins"],
         "win_rate": _pct(t["wins"], t["battles"])}
        for card_id, t in totals.items()
        if t["battles"] >= min_battles
    ]
    results.sort(key=lambda r: -r["win_rate"])
    return results


def compute_deck_stats(deck_rows, season=None):
    """Per-deck totals, most-played first."""
    totals = {}
    for row in deck_rows:
        if season is not None and row["season"] != season:
            continue
        t = totals.setdefault(row["deck_key"], {"battles": 0, "wins": 0, "three_crowns": 0})
        t["battles"] += row["battles"]
        t["wins"] += row["wins"]
        t["three_crowns"] += row["three_crowns"]

    results = []
    for deck_key, t in totals.items():
        cards = deck_cards_from_key(deck_key)
        results.append({
            "deck_key": deck_key,
            "cards": cards,
            "battles": t["battles"],
            "wins": t["wins"],
            "three_crowns": t["three_crowns"],
            "three_crown_rate": _pct(t["three_crowns"], t["battles"]),
            "win_rate": _pct(t["wins"], t["battles"]),
            "archetype": classify_archetype(cards),
        })
    results.sort(key=lambda r: -r["battles"])
    return results


def compute_season_summary(season, deck_rows, card_rows, peak_trophies=None):
    """Totals, most-used deck and best card (>= 10 battles) for one season."""
    season_decks = [d for d in deck_rows if d["season"] == season]
    total_battles = sum(d["battles"] for d in season_decks)
    total_wins = sum(d["wins"] for d in season_decks)

    most_used = None
    if season_decks:
        top = max(season_decks, key=lambda d: d["battles"])
        most_used = {
            "deck_key": top["deck_key"],
            "cards": deck_cards_from_key(top["deck_key"]),
            "battles": top["battles"],
        }

    best_card = None
    card_rates = compute_card_win_rates(card_rows, min_battles=MIN_CARD_BATTLES, season=season)
    if card_rates:
        top = card_rates[0]
        best_card = {"card_id": top["card_id"], "win_rate": top["win_rate"], "battles": top["battles"]}

    return {
        "season": season,
        "label": season_label(season),
        "total_battles": total_battles,
        "wins": total_wins,
        "losses": total_battles - total_wins,
        "win_rate": _pct(total_wins, total_battles),
        "peak_trophies": peak_trophies,
        "most_used_deck": most_used,
        "best_card": best_card,
    }


def compute_matchup_data(deck_rows, deck_key):
    """How one deck fares per opposing archetype: top 5 by battles."""
    totals = {}
    for row in deck_rows:
        if row["deck_key"] != deck_key:
            continue
        for arch, data in (row.get("opponent_archetypes") or {}).items():
            t = totals.setdefault(arch, {"battles": 0, "wins": 0})
            t["battles"] += data["battles"]
            t["wins"] += data["wins"]

    results = [
        {"opponent_archetype": arch, "battles": t["battles"], "wins": t["wins"],
         "win_rate": _pct(t["wins"], t["battles"])}
        for arch, t in totals.items()
    ]
    results.sort(key=lambda r: -r["battles"])
    return results[:MAX_MATCHUPS]
