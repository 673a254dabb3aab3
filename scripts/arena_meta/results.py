"""Result builders — project aggregations into ranked, publishable rows."""

from arena_meta.aggregation import arena_game_totals
from arena_meta.constants import MIN_SAMPLE_SIZE
from arena_meta.decks import classify_archetype, compute_avg_elixir, detect_win_condition


def build_meta_decks(deck_aggs, cost_index, min_sample_size=MIN_SAMPLE_SIZE):
    """Meta deck rows for every deck with at least min_sample_size games.

    usage_rate is a fraction of all deck-games in the arena, counting decks
    below the floor too. Sorted by arena, then win rate descending.
    """
    arena_totals = arena_game_totals(deck_aggs)

    meta_decks = []
    for agg in deck_aggs.values():
        games = agg["games"]
        if games < min_sample_size or games == 0:
            continue
        arena_total = arena_totals.get(agg["arena_id"]) or 1
        meta_decks.append({
            "arena_id": agg["arena_id"],
            "deck_key": agg["deck_key"],
            "cards": agg["cards"],
            "win_rate": round(agg["wins"] / games * 100, 2),
            "usage_rate": round(games / arena_total, 4),
            "three_crown_rate": round(agg["three_crowns"] / games * 100, 2),
            "avg_elixir": compute_avg_elixir(agg["cards"], cost_index),
            "sample_size": games,
            "archetype": classify_archetype(agg["cards"]),
            "win_condition": detect_win_condition(agg["cards"]),
        })

    meta_decks.sort(key=lambda d: (d["arena_id"], -d["win_rate"]))
    return meta_decks


def build_counter_decks(matchup_aggs, min_sample_size=MIN_SAMPLE_SIZE):
    """Counter deck rows for matchups with enough games and at least one win.

    Sorted by win rate against the target card, descending.
    """
    counter_decks = []
    for m in matchup_aggs.values():
        total = m["total_vs"]
        if total < min_sample_size or total == 0:
            continue
        if m["wins"] == 0:
            continue
        counter_decks.append({
            "arena_id": m["arena_id"],
            "target_card": m["target_card"],
            "deck_key": m["deck_key"],
            "cards": m["cards"],
            "win_rate_vs_target": round(m["wins"] / total * 100, 2),
            "sample_size": total,
            "three_crown_rate": round(m["three_crowns"] / total * 100, 2),
        })

    counter_decks.sort(key=lambda d: -d["win_rate_vs_target"])
    return counter_decks
