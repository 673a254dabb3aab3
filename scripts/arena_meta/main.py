"""Pipeline orchestration — run_pipeline, publish_snapshot and main entry point."""

import sys
import time
from collections import Counter

from arena_meta.aggregation import aggregate_battles
from arena_meta.api_client import ClashRoyaleClient
from arena_meta.card_index import CardCostIndex, StaticCostIndex, load_cards_csv
from arena_meta.constants import (
    PLAYERS_TO_SAMPLE, BATTLES_PER_PLAYER, MIN_SAMPLE_SIZE, FETCH_CONCURRENCY,
    REQUESTS_PER_SECOND, BACKOFF_BASE_SECONDS, MAX_RETRIES, TRACKED_ARENAS,
)
from arena_meta.errors import ArenaMetaError, NoSeedsAvailableError, ProviderOutageError
from arena_meta.fetcher import fetch_battle_logs
from arena_meta.io_helpers import get_dynamo_table
from arena_meta.results import build_meta_decks, build_counter_decks
from arena_meta.seeds import get_player_seeds
from arena_meta.snapshots import JsonSnapshotStore, DynamoSnapshotStore


def catalog_loader(client):
    """Card catalog from the API, falling back to the reference CSV."""
    def load():
        try:
            items = client.get_cards().get("items", [])
        except ArenaMetaError as e:
            print(f"  Warning: card catalog unavailable ({e}), using CSV")
            items = []
        return items or load_cards_csv()
    return load


def build_meta_with_fallback(deck_aggs, cost_index, min_sample_size):
    """Meta decks priced by cost_index, or by the default when it can't load."""
    index = StaticCostIndex() if cost_index is None else cost_index
    try:
        return build_meta_decks(deck_aggs, index, min_sample_size=min_sample_size)
    except ArenaMetaError as e:
        print(f"  Warning: no card costs available ({e}), avg elixir will use the default")
        return build_meta_decks(deck_aggs, StaticCostIndex(), min_sample_size=min_sample_size)


def print_skip_counts(skip_log):
    if not skip_log:
        return
    for reason, count in sorted(Counter(skip_log).items(), key=lambda x: -x[1]):
        print(f"    {reason}: {count}")


def run_pipeline(client, cost_index=None, players=PLAYERS_TO_SAMPLE,
                 battles_per_player=BATTLES_PER_PLAYER, min_sample_size=MIN_SAMPLE_SIZE,
                 concurrency=FETCH_CONCURRENCY, rate_per_second=REQUESTS_PER_SECOND,
                 base_delay=BACKOFF_BASE_SECONDS, max_retries=MAX_RETRIES,
                 clock=time.monotonic, sleep=time.sleep):
    """Seeds → battle logs → aggregations → ranked meta and counter decks.

    Raises NoSeedsAvailableError when discovery finds nobody and
    ProviderOutageError when every battle-log fetch fails; in both cases
    nothing should be published.
    """
    start = clock()

    print("\n[1/4] Discovering player seeds...")
    seeds = get_player_seeds(client, players=players, rate_per_second=rate_per_second,
                             base_delay=base_delay, max_retries=max_retries, sleep=sleep)
    if not seeds:
        raise NoSeedsAvailableError("no player seeds available (leaderboard and clans failed)")
    print(f"  Using {len(seeds)} seeds")

    print("\n[2/4] Fetching battle logs...")
    fetched = fetch_battle_logs(client, [s["tag"] for s in seeds], concurrency=concurrency,
                                rate_per_second=rate_per_second, base_delay=base_delay,
                                max_retries=max_retries, clock=clock, sleep=sleep)
    ok = [f for f in fetched if f["status"] == "ok"]
    if not ok:
        raise ProviderOutageError(f"all {len(fetched)} battle-log fetches failed")
    print(f"  Fetched {sum(len(f['battles']) for f in ok)} battles from {len(ok)} players")

    print("\n[3/4] Aggregating...")
    skip_log = []
    agg = aggregate_battles(fetched, seeds, battles_per_player=battles_per_player, skip_log=skip_log)
    print(f"  Processed {agg['battles_processed']} battles, skipped {len(skip_log)}")
    print_skip_counts(skip_log)

    print("\n[4/4] Building results...")
    meta_decks = build_meta_with_fallback(agg["deck_aggs"], cost_index, min_sample_size)
    counter_decks = build_counter_decks(agg["matchup_aggs"], min_sample_size=min_sample_size)

    per_arena = Counter(d["arena_id"] for d in meta_decks)
    for arena_id in TRACKED_ARENAS:
        if per_arena[arena_id]:
            print(f"    Arena {arena_id}: {per_arena[arena_id]} meta decks")
    print(f"  {len(meta_decks)} meta decks, {len(counter_decks)} counter decks")

    return {
        "meta_decks": meta_decks,
        "counter_decks": counter_decks,
        "stats": {
            "players_processed": len(seeds),
            "players_failed": len(fetched) - len(ok),
            "battles_processed": agg["battles_processed"],
            "battles_skipped": len(skip_log),
            "arenas_with_data": len(per_arena),
            "duration_seconds": round(clock() - start, 2),
        },
    }


def publish_snapshot(store, result):
    """Atomically replace the published snapshot with this run's output."""
    return store.replace_all(result["meta_decks"], result["counter_decks"], stats=result["stats"])


def make_store(kind):
    if kind == "dynamo":
        return DynamoSnapshotStore(get_dynamo_table())
    return JsonSnapshotStore()


def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Arena Meta Pipeline")
    parser.add_argument("--players", type=int, default=PLAYERS_TO_SAMPLE,
                        help="Players to sample battle logs from")
    parser.add_argument("--battles-per-player", type=int, default=BATTLES_PER_PLAYER)
    parser.add_argument("--min-sample", type=int, default=MIN_SAMPLE_SIZE,
                        help="Minimum games for a deck/matchup to be published")
    parser.add_argument("--concurrency", type=int, default=FETCH_CONCURRENCY)
    parser.add_argument("--rps", type=float, default=REQUESTS_PER_SECOND,
                        help="Requests-per-second ceiling")
    parser.add_argument("--backoff", type=float, default=BACKOFF_BASE_SECONDS,
                        help="Base backoff delay in seconds")
    parser.add_argument("--max-retries", type=int, default=MAX_RETRIES)
    parser.add_argument("--store", choices=["json", "dynamo"], default="json")
    parser.add_argument("--dry-run", action="store_true",
                        help="Run the pipeline but don't publish a snapshot")
    args = parser.parse_args(argv)

    print("Arena Meta Pipeline")
    print("=" * 50)

    client = ClashRoyaleClient()
    cost_index = CardCostIndex(catalog_loader(client))

    try:
        result = run_pipeline(
            client, cost_index=cost_index, players=args.players,
            battles_per_player=args.battles_per_player, min_sample_size=args.min_sample,
            concurrency=args.concurrency, rate_per_second=args.rps,
            base_delay=args.backoff, max_retries=args.max_retries,
        )
    except (NoSeedsAvailableError, ProviderOutageError) as e:
        print(f"\nError: {e}")
        print("Aborted: 0 players processed, previous snapshot left in place.")
        sys.exit(1)

    if args.dry_run:
        print("\nDry run, not publishing.")
    else:
        print("\nPublishing snapshot...")
        generation = publish_snapshot(make_store(args.store), result)
        print(f"  Current snapshot: {generation}")

    stats = result["stats"]
    print(f"\nDone! {stats['players_processed']} players, "
          f"{stats['battles_processed']} battles in {stats['duration_seconds']}s")


if __name__ == "__main__":
    main()
