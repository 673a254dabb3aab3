"""Counter deck queries — "what beats card X in arena Y" over the current snapshot.

The cascade prefers the most specific data that clears a confidence floor
and flags every answer that came from a fallback tier:

  1. arena rows with sample >= 50, needs 5 rows   → limited_data False
  2. arena rows with sample >= 10, needs 3 rows   → limited_data True
  3. all arenas combined per deck, sample >= 10   → limited_data True
  4. nothing                                       → [] with limited_data True

Thin data is never an error.
"""

from collections import defaultdict

from arena_meta.constants import (
    COUNTER_IDEAL_SAMPLE, COUNTER_IDEAL_MIN_ROWS,
    COUNTER_FALLBACK_SAMPLE, COUNTER_FALLBACK_MIN_ROWS,
    COUNTER_MAX_RESULTS,
)
from arena_meta.decks import normalize_card_key

TIER_ARENA = "arena"
TIER_ARENA_FALLBACK = "arena_fallback"
TIER_GLOBAL = "global"
TIER_NONE = "none"


def _result_row(row, arena_id, limited_data):
    return {
        "deck_key": row["deck_key"],
        "cards": row["cards"],
        "win_rate_vs_target": row["win_rate_vs_target"],
        "sample_size": row["sample_size"],
        "three_crown_rate": row["three_crown_rate"],
        "arena_id": arena_id,
        "limited_data": limited_data,
    }


def arena_rows(counter_decks, card_key, arena_id, min_sample, limit):
    """Arena-scoped rows for a card with sample >= min_sample, best first."""
    rows = [r for r in counter_decks
            if r["arena_id"] == arena_id
            and r["target_card"] == card_key
            and r["sample_size"] >= min_sample]
    rows.sort(key=lambda r: -r["win_rate_vs_target"])
    return rows[:limit]


def global_rows(counter_decks, card_key, min_sample, limit):
    """Combine a card's rows across arenas, per deck.

    Sample sizes are summed; win rate and three-crown rate are plain
    averages of the per-arena rates.
    """
    grouped = defaultdict(lambda: {"cards": None, "sample": 0, "win_rates": [], "three_crown_rates": []})
    for r in counter_decks:
        if r["target_card"] != card_key:
            continue
        g = grouped[r["deck_key"]]
        g["cards"] = g["cards"] or r["cards"]
        g["sample"] += r["sample_size"]
        g["win_rates"].append(r["win_rate_vs_target"])
        g["three_crown_rates"].append(r["three_crown_rate"])

    rows = []
    for deck_key, g in grouped.items():
        if g["sample"] < min_sample:
            continue
        rows.append({
            "deck_key": deck_key,
            "cards": g["cards"],
            "win_rate_vs_target": round(sum(g["win_rates"]) / len(g["win_rates"]), 2),
            "sample_size": g["sample"],
            "three_crown_rate": round(sum(g["three_crown_rates"]) / len(g["three_crown_rates"]), 2),
        })
    rows.sort(key=lambda r: -r["win_rate_vs_target"])
    return rows[:limit]


def cascade_counter_decks(counter_decks, target_card, arena_id, max_results=COUNTER_MAX_RESULTS):
    """Run the tier cascade over an in-memory list of counter deck rows."""
    card_key = normalize_card_key(target_card)

    def response(rows, limited_data, tier):
        return {
            "results": [_result_row(r, arena_id, limited_data) for r in rows],
            "limited_data": limited_data,
            "arena_id": arena_id,
            "target_card": card_key,
            "tier": tier,
        }

    ideal = arena_rows(counter_decks, card_key, arena_id, COUNTER_IDEAL_SAMPLE, max_results)
    if len(ideal) >= COUNTER_IDEAL_MIN_ROWS:
        return response(ideal, False, TIER_ARENA)

    fallback = arena_rows(counter_decks, card_key, arena_id, COUNTER_FALLBACK_SAMPLE, max_results)
    if len(fallback) >= COUNTER_FALLBACK_MIN_ROWS:
        return response(fallback, True, TIER_ARENA_FALLBACK)

    combined = global_rows(counter_decks, card_key, COUNTER_FALLBACK_SAMPLE, max_results)
    if combined:
        return response(combined, True, TIER_GLOBAL)

    return response([], True, TIER_NONE)


class CounterQueryEngine:
    """Read path over a snapshot store, with an optional response cache.

    Cache keys include the snapshot generation, so a newly published
    snapshot is never answered from the old one's cache.
    """

    def __init__(self, store, cache=None, max_results=COUNTER_MAX_RESULTS):
        self.store = store
        self.cache = cache
        self.max_results = max_results

    def find_counter_decks(self, target_card, arena_id):
        # One pointer read: the cache key and the loaded rows share a generation
        generation = self.store.current_generation()
        key = (generation, normalize_card_key(target_card), arena_id)

        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        snapshot = (self.store.load_generation(generation) if generation else None) or {}
        result = cascade_counter_decks(snapshot.get("counter_decks") or [], target_card,
                                       arena_id, max_results=self.max_results)
        if self.cache is not None:
            self.cache.set(key, result)
        return result

    def top_meta_decks(self, arena_id, limit=10):
        """Meta decks for an arena, best win rate first."""
        rows = [d for d in (self.store.load_current() or {}).get("meta_decks") or []
                if d["arena_id"] == arena_id]
        rows.sort(key=lambda d: -d["win_rate"])
        return rows[:limit]
