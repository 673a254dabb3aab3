"""Sync a player's battle log and print their season report.

Usage:
    python scripts/season_report.py alice --tag "#2PP" [--season 130] [--no-sync]
"""

import argparse
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from arena_meta.api_client import ClashRoyaleClient  # noqa: E402
from arena_meta.constants import MIN_CARD_BATTLES  # noqa: E402
from arena_meta.errors import ArenaMetaError  # noqa: E402
from arena_meta.fetcher import fetch_with_backoff  # noqa: E402
from arena_meta.history import PlayerHistoryStore  # noqa: E402
from arena_meta.player_stats import PlayerStatsService  # noqa: E402


def sync_history(client, history, user_id, player_tag):
    """Pull the player's latest battle log into history. Returns (added, best_trophies)."""
    battles = fetch_with_backoff(lambda: client.get_battles(player_tag))
    added = history.merge(user_id, player_tag, battles)

    best = None
    try:
        profile = fetch_with_backoff(lambda: client.get_player(player_tag))
        best = profile.get("bestTrophies") if isinstance(profile, dict) else None
    except ArenaMetaError as e:
        print(f"  Warning: profile unavailable ({e})")
    return added, best


def build_report(service, user_id, season=None, peak_trophies=None, min_battles=MIN_CARD_BATTLES):
    summary = service.season_summary(user_id, season=season, peak_trophies=peak_trophies)
    decks = service.deck_stats(user_id, season=summary["season"])
    return {
        "summary": summary,
        "decks": decks[:5],
        "cards": service.card_win_rates(user_id, season=summary["season"], min_battles=min_battles)[:5],
        "matchups": service.matchups(user_id, decks[0]["deck_key"]) if decks else [],
        "seasons": service.seasons(user_id),
    }


def format_report(report):
    """Format a season report as plain text."""
    s = report["summary"]
    lines = [f"**Season {s['season']}** ({s['label']})"]

    if s["total_battles"] == 0:
        lines.append("No battles recorded this season.")
        return "\n".join(lines)

    lines.append(f"{s['total_battles']} battles, {s['wins']}W / {s['losses']}L ({s['win_rate']}% WR)")
    if s.get("peak_trophies"):
        lines.append(f"Peak trophies: {s['peak_trophies']}")
    if s.get("best_card"):
        bc = s["best_card"]
        lines.append(f"Best card: {bc['card_id']} ({bc['win_rate']}% over {bc['battles']})")

    if report["decks"]:
        lines.append("")
        lines.append("**Decks**")
        for i, d in enumerate(report["decks"], 1):
            lines.append(f"{i}. {d['archetype']}: {d['battles']} battles, {d['win_rate']}% WR")
            lines.append(f"   {', '.join(d['cards'])}")

    if report["cards"]:
        lines.append("")
        lines.append("**Cards**")
        for c in report["cards"]:
            lines.append(f"  {c['card_id']}: {c['win_rate']}% ({c['battles']})")

    if report["matchups"]:
        lines.append("")
        lines.append("**Main deck vs**")
        for m in report["matchups"]:
            lines.append(f"  {m['opponent_archetype']}: {m['wins']}/{m['battles']} ({m['win_rate']}%)")

    if len(report["seasons"]) > 1:
        lines.append("")
        lines.append("Seasons on record: " + ", ".join(x["label"] for x in report["seasons"]))

    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Player season report")
    parser.add_argument("user_id", help="Local user id the history is stored under")
    parser.add_argument("--tag", help="Player tag; defaults to the one stored for this user")
    parser.add_argument("--season", type=int, help="Season number (default: current)")
    parser.add_argument("--min-battles", type=int, default=MIN_CARD_BATTLES)
    parser.add_argument("--no-sync", action="store_true", help="Report from stored history only")
    args = parser.parse_args(argv)

    history = PlayerHistoryStore()
    tag = args.tag or history.player_tag(args.user_id)
    peak = None

    if not args.no_sync:
        if not tag:
            print("Error: no player tag given and none stored for this user")
            sys.exit(1)
        print(f"Syncing battle log for {tag}...")
        try:
            added, peak = sync_history(ClashRoyaleClient(), history, args.user_id, tag)
        except ArenaMetaError as e:
            print(f"  Warning: sync failed ({e}), using stored history")
        else:
            print(f"  {added} new battles stored")
        print()

    report = build_report(PlayerStatsService(history), args.user_id,
                          season=args.season, peak_trophies=peak, min_battles=args.min_battles)
    print(format_report(report))


if __name__ == "__main__":
    main()
