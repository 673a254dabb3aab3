"""Clash Royale API client — battle logs, leaderboards, clans, card catalog.

Every call either returns the decoded JSON or raises ThrottledError (429) /
UnavailableError (anything else). Retrying is the fetcher's job, not ours.
"""

from urllib.parse import quote

import requests

from arena_meta.constants import (
    API_BASE_URL, API_KEY, API_TIMEOUT_SECONDS, GLOBAL_LOCATION_ID,
)
from arena_meta.errors import ThrottledError, UnavailableError


def encode_tag(tag):
    """'#abc' / 'ABC' → '%23ABC' for use in a URL path."""
    clean = str(tag or "").strip().lstrip("#").upper()
    return quote(f"#{clean}", safe="")


def _retry_after(response):
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class ClashRoyaleClient:

    def __init__(self, api_key=API_KEY, base_url=API_BASE_URL,
                 timeout_seconds=API_TIMEOUT_SECONDS, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})
        else:
            print("  Warning: CLASH_ROYALE_API_KEY not set, requests will be rejected")

    def _get_json(self, path, params=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise UnavailableError(f"GET {path} failed: {e}") from e

        if response.status_code == 429:
            raise ThrottledError(f"GET {path} throttled", retry_after=_retry_after(response))
        if response.status_code == 404:
            raise UnavailableError(f"GET {path} not found", status=404)
        if response.status_code >= 400:
            raise UnavailableError(
                f"GET {path} returned {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UnavailableError(f"GET {path} returned invalid JSON") from e

    # ─── Battle History Provider ──────────────────────────────────

    def get_battles(self, tag):
        """Battle log for a player tag (most recent first)."""
        data = self._get_json(f"/players/{encode_tag(tag)}/battlelog")
        return data if isinstance(data, list) else []

    def get_player(self, tag):
        return self._get_json(f"/players/{encode_tag(tag)}")

    # ─── Leaderboard / Clan Directory ─────────────────────────────

    def get_top_players(self, scope="global", limit=50):
        return self._get_json(f"/locations/{scope}/rankings/players", params={"limit": limit})

    def get_clan_rankings(self, scope="global"):
        location_id = GLOBAL_LOCATION_ID if scope == "global" else scope
        return self._get_json(f"/locations/{location_id}/rankings/clans")

    def get_clan_members(self, clan_tag):
        return self._get_json(f"/clans/{encode_tag(clan_tag)}/members")

    # ─── Card Catalog ─────────────────────────────────────────────

    def get_cards(self):
        return self._get_json("/cards")
