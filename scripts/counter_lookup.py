"""Look up counter decks for a card in an arena from the published snapshot.

Usage:
    python scripts/counter_lookup.py "Hog Rider" --arena 15
    python scripts/counter_lookup.py "Mega Knight" --arena 54 --meta
"""

import argparse
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from arena_meta.cache import TTLCache  # noqa: E402
from arena_meta.constants import COUNTER_CACHE_TTL_SECONDS, COUNTER_MAX_RESULTS  # noqa: E402
from arena_meta.counter_engine import CounterQueryEngine  # noqa: E402
from arena_meta.io_helpers import get_dynamo_table  # noqa: E402
from arena_meta.snapshots import JsonSnapshotStore, DynamoSnapshotStore  # noqa: E402


def format_counters(response):
    """Render a counter query response as plain text lines."""
    header = f"Counters to {response['target_card']} in arena {response['arena_id']}"
    if response["limited_data"]:
        header += f"  [limited data: {response['tier']}]"
    lines = [header, "-" * len(header)]

    if not response["results"]:
        lines.append("No counter decks found.")
        return "\n".join(lines)

    for i, row in enumerate(response["results"], 1):
        lines.append(f"{i:2d}. {row['win_rate_vs_target']:5.1f}% over {row['sample_size']} games "
                     f"({row['three_crown_rate']:.1f}% 3-crown)")
        lines.append(f"    {', '.join(row['cards'])}")
    return "\n".join(lines)


def format_meta(decks):
    if not decks:
        return "No meta decks published for this arena."
    lines = []
    for i, d in enumerate(decks, 1):
        label = d["archetype"]
        if d.get("win_condition"):
            label += f" ({d['win_condition']})"
        lines.append(f"{i:2d}. {d['win_rate']:5.1f}% WR  {d['usage_rate'] * 100:4.1f}% usage  "
                     f"{d['avg_elixir']:.1f} elixir  {label}")
        lines.append(f"    {', '.join(d['cards'])}")
    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Counter deck lookup")
    parser.add_argument("card", help="Target card name, e.g. 'Hog Rider'")
    parser.add_argument("--arena", type=int, required=True, help="Arena id (10-20, or 54)")
    parser.add_argument("--limit", type=int, default=COUNTER_MAX_RESULTS)
    parser.add_argument("--meta", action="store_true", help="Also list the arena's top meta decks")
    parser.add_argument("--store", choices=["json", "dynamo"], default="json")
    args = parser.parse_args(argv)

    store = DynamoSnapshotStore(get_dynamo_table()) if args.store == "dynamo" else JsonSnapshotStore()
    if store.current_generation() is None:
        print("No snapshot published yet. Run scripts/fetch_meta.py first.")
        sys.exit(1)

    engine = CounterQueryEngine(store, cache=TTLCache(COUNTER_CACHE_TTL_SECONDS), max_results=args.limit)
    print(format_counters(engine.find_counter_decks(args.card, args.arena)))

    if args.meta:
        print()
        print(format_meta(engine.top_meta_decks(args.arena)))


if __name__ == "__main__":
    main()
