"""Player stats queries — deck, card, matchup and season lookups by user.

Everything is recomputed from the user's stored battle history per call;
nothing here is cached or mutated.
"""

from arena_meta.constants import MIN_CARD_BATTLES
from arena_meta.season_stats import (
    process_battle_stats, compute_card_win_rates, compute_deck_stats,
    compute_season_summary, compute_matchup_data, current_season, season_label,
)


class PlayerStatsService:

    def __init__(self, history, clock=None):
        self.history = history
        self._clock = clock

    def _rows(self, user_id):
        return process_battle_stats(self.history.load(user_id))

    def _current_season(self):
        return current_season(self._clock() if self._clock else None)

    def deck_stats(self, user_id, season=None):
        return compute_deck_stats(self._rows(user_id)["deck_stats"], season=season)

    def card_win_rates(self, user_id, season=None, min_battles=MIN_CARD_BATTLES):
        return compute_card_win_rates(self._rows(user_id)["card_stats"],
                                      min_battles=min_battles, season=season)

    def matchups(self, user_id, deck_key):
        return compute_matchup_data(self._rows(user_id)["deck_stats"], deck_key)

    def season_summary(self, user_id, season=None, peak_trophies=None):
        """Summary for a season; defaults to the current one."""
        rows = self._rows(user_id)
        season = season if season is not None else self._current_season()
        return compute_season_summary(season, rows["deck_stats"], rows["card_stats"],
                                      peak_trophies=peak_trophies)

    def seasons(self, user_id):
        """Seasons with any battles, newest first, with labels."""
        found = {row["season"] for row in self._rows(user_id)["deck_stats"]}
        return [{"season": s, "label": season_label(s)} for s in sorted(found, reverse=True)]
