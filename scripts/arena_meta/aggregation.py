"""Aggregation functions — turn fetched battle logs into deck and matchup tallies.

Single-threaded fold over already-fetched data. No I/O, no side effects.
Sample-size floors are applied by the result builder, which also needs the
unfiltered per-arena totals for usage rates.
"""

from arena_meta.cleaning import parse_battle, outcome_of
from arena_meta.constants import BATTLES_PER_PLAYER
from arena_meta.decks import normalize_deck_key, normalize_card_key

MIRROR = {"win": "loss", "loss": "win", "draw": "draw"}


def battle_identity(battle):
    """Identity of a battle seen from either side's log, or None if unknown.

    Two seeds who played each other both report the battle; it must only
    count once.
    """
    battle_time = battle.get("battleTime")
    team = battle.get("team") or []
    opponent = battle.get("opponent") or []
    tags = []
    for side in (team, opponent):
        for entry in side if isinstance(side, list) else []:
            tag = entry.get("tag") if isinstance(entry, dict) else None
            if not isinstance(tag, str) or not tag:
                return None
            tags.append(tag.strip().upper())
    if not isinstance(battle_time, str) or not battle_time or not tags:
        return None
    return (battle_time, tuple(sorted(tags)))


def _deck_row(deck_aggs, arena_id, deck_key, cards):
    key = (arena_id, deck_key)
    row = deck_aggs.get(key)
    if row is None:
        row = {
            "arena_id": arena_id,
            "deck_key": deck_key,
            "cards": list(cards),
            "games": 0, "wins": 0, "losses": 0, "draws": 0,
            "three_crowns": 0,
        }
        deck_aggs[key] = row
    return row


def _matchup_row(matchup_aggs, arena_id, deck_key, cards, target_card):
    key = (arena_id, deck_key, target_card)
    row = matchup_aggs.get(key)
    if row is None:
        row = {
            "arena_id": arena_id,
            "deck_key": deck_key,
            "target_card": target_card,
            "cards": list(cards),
            "wins": 0, "total_vs": 0, "three_crowns": 0,
        }
        matchup_aggs[key] = row
    return row


def record_deck_result(deck_aggs, arena_id, cards, result, crowns):
    """Tally one battle for one deck from that deck's own perspective."""
    row = _deck_row(deck_aggs, arena_id, normalize_deck_key(cards), cards)
    row["games"] += 1
    if result == "win":
        row["wins"] += 1
        if crowns >= 3:
            row["three_crowns"] += 1
    elif result == "loss":
        row["losses"] += 1
    else:
        row["draws"] += 1


def record_matchup(matchup_aggs, arena_id, cards, opponent_cards, result, crowns):
    """Tally one battle for `cards` against every card the opponent held.

    total_vs counts every battle against the card; wins (and three-crown
    wins) only the ones this deck won.
    """
    deck_key = normalize_deck_key(cards)
    for card in opponent_cards:
        row = _matchup_row(matchup_aggs, arena_id, deck_key, cards, normalize_card_key(card))
        row["total_vs"] += 1
        if result == "win":
            row["wins"] += 1
            if crowns >= 3:
                row["three_crowns"] += 1


def aggregate_battles(battles_by_player, seeds, battles_per_player=BATTLES_PER_PLAYER, skip_log=None):
    """Fold fetched battle logs into per-arena deck and matchup aggregations.

    battles_by_player: [{"tag", "battles"}] as returned by fetch_battle_logs.
    seeds: [{"tag", "arena_id"}] used for each player's fallback arena.
    skip_log: optional list; one rejection reason is appended per skipped battle.

    Returns {"deck_aggs", "matchup_aggs", "battles_processed"} where the
    aggs map (arena_id, deck_key[, target_card]) → row dict.
    """
    fallback_arena = {s["tag"].strip().lower(): s.get("arena_id") for s in seeds}
    deck_aggs = {}
    matchup_aggs = {}
    seen = set()
    processed = 0

    for entry in battles_by_player:
        tag = entry.get("tag") or ""
        fallback = fallback_arena.get(tag.strip().lower())

        for raw in (entry.get("battles") or [])[:battles_per_player]:
            parsed = parse_battle(raw, fallback_arena=fallback)
            if parsed.reason:
                if skip_log is not None:
                    skip_log.append(parsed.reason)
                continue

            identity = battle_identity(raw)
            if identity is not None:
                if identity in seen:
                    if skip_log is not None:
                        skip_log.append("duplicate")
                    continue
                seen.add(identity)

            battle = parsed.value
            arena_id = battle["arena_id"]
            team_cards, opp_cards = battle["team_cards"], battle["opponent_cards"]
            team_crowns, opp_crowns = battle["team_crowns"], battle["opponent_crowns"]
            team_result = outcome_of(team_crowns, opp_crowns)
            opp_result = MIRROR[team_result]

            record_deck_result(deck_aggs, arena_id, team_cards, team_result, team_crowns)
            record_deck_result(deck_aggs, arena_id, opp_cards, opp_result, opp_crowns)
            record_matchup(matchup_aggs, arena_id, team_cards, opp_cards, team_result, team_crowns)
            record_matchup(matchup_aggs, arena_id, opp_cards, team_cards, opp_result, opp_crowns)
            processed += 1

    return {
        "deck_aggs": deck_aggs,
        "matchup_aggs": matchup_aggs,
        "battles_processed": processed,
    }


def arena_game_totals(deck_aggs):
    """Sum of deck-games per arena (each battle contributes two)."""
    totals = {}
    for row in deck_aggs.values():
        totals[row["arena_id"]] = totals.get(row["arena_id"], 0) + row["games"]
    return totals
