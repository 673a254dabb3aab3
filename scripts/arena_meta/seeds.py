"""Player seed discovery — leaderboard first, clan rosters as a supplement."""

import time

from arena_meta.cleaning import arena_id_from_trophies
from arena_meta.constants import (
    PLAYERS_TO_SAMPLE, LEADERBOARD_LIMIT, CLANS_TO_SCAN, MEMBERS_PER_CLAN,
    CLAN_FETCH_CONCURRENCY, REQUESTS_PER_SECOND, BACKOFF_BASE_SECONDS, MAX_RETRIES,
)
from arena_meta.errors import ArenaMetaError
from arena_meta.fetcher import fetch_with_backoff, map_with_rate_limit


def _items(payload):
    items = payload.get("items") if isinstance(payload, dict) else None
    return items if isinstance(items, list) else []


def _trophies(entry):
    value = entry.get("trophies")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def make_seed(tag, trophies):
    return {"tag": tag, "trophies": trophies, "arena_id": arena_id_from_trophies(trophies)}


def get_player_seeds(client, players=PLAYERS_TO_SAMPLE, rate_per_second=REQUESTS_PER_SECOND,
                     base_delay=BACKOFF_BASE_SECONDS, max_retries=MAX_RETRIES, sleep=time.sleep):
    """Collect up to `players` unique player seeds.

    Returns [{"tag", "trophies", "arena_id"}]. An empty list means every
    source failed or came back empty.
    """
    seeds = []
    seen = set()

    def add(tag, trophies):
        key = tag.strip().lower()
        if not key or key in seen:
            return
        seen.add(key)
        seeds.append(make_seed(tag, trophies))

    def call(fn):
        return fetch_with_backoff(fn, base_delay=base_delay, max_retries=max_retries, sleep=sleep)

    # Leaderboard
    try:
        top = call(lambda: client.get_top_players("global", min(LEADERBOARD_LIMIT, players)))
    except ArenaMetaError as e:
        print(f"  Warning: leaderboard unavailable ({e}), falling back to clans")
        top = None
    for entry in _items(top):
        tag = entry.get("tag") if isinstance(entry, dict) else None
        if isinstance(tag, str):
            add(tag, _trophies(entry))
    print(f"  Leaderboard: {len(seeds)} seeds")

    # Clan rosters
    if len(seeds) < players:
        try:
            clans = call(lambda: client.get_clan_rankings("global"))
        except ArenaMetaError as e:
            print(f"  Warning: clan rankings unavailable ({e})")
            clans = None

        clan_tags = [c["tag"] for c in _items(clans)
                     if isinstance(c, dict) and isinstance(c.get("tag"), str)][:CLANS_TO_SCAN]

        outcomes = map_with_rate_limit(
            clan_tags,
            lambda clan_tag: call(lambda: client.get_clan_members(clan_tag)),
            concurrency=CLAN_FETCH_CONCURRENCY,
            rate_per_second=rate_per_second,
            sleep=sleep,
        )

        before = len(seeds)
        for outcome in outcomes:
            if len(seeds) >= players:
                break
            if outcome.error is not None:
                continue
            members = [m for m in _items(outcome.value)
                       if isinstance(m, dict) and isinstance(m.get("tag"), str)]
            members.sort(key=lambda m: _trophies(m) or 0, reverse=True)
            for member in members[:MEMBERS_PER_CLAN]:
                if len(seeds) >= players:
                    break
                add(member["tag"], _trophies(member))
        print(f"  Clans: {len(seeds) - before} seeds from {len(clan_tags)} clans")

    return seeds[:players]
