"""Card cost index — card name → elixir cost, refreshed on a TTL."""

import csv
import time

from arena_meta.constants import CARDS_CSV, CARD_INDEX_TTL_SECONDS
from arena_meta.decks import normalize_card_key
from arena_meta.errors import ArenaMetaError


def _parse_cost(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def build_cost_map(items):
    """Turn catalog items ({"name", "elixirCost"}) into a lowercased name → cost map."""
    costs = {}
    for item in items or []:
        name = normalize_card_key(item.get("name"))
        if not name:
            continue
        costs[name] = _parse_cost(item.get("elixirCost"))
    return costs


def load_cards_csv(path=CARDS_CSV):
    """Load card costs from a CSV with Name and Cost columns."""
    items = []
    if not path.exists():
        print(f"  Warning: {path} not found, skipping card costs")
        return items

    with open(path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            name = row.get("Name", "").strip()
            if not name:
                continue
            items.append({"name": name, "elixirCost": row.get("Cost", "")})

    print(f"  Loaded {len(items)} cards from CSV")
    return items


class CardCostIndex:
    """Lookup of elixir costs with its own refresh policy.

    loader is a zero-arg callable returning catalog items. A failed or empty
    refresh keeps the previous index; with no previous index it raises.
    """

    def __init__(self, loader, ttl_seconds=CARD_INDEX_TTL_SECONDS, clock=time.monotonic):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._costs = None
        self._expires_at = 0.0

    @classmethod
    def from_items(cls, items, **kwargs):
        return cls(lambda: items, **kwargs)

    def refresh(self):
        try:
            items = self._loader()
        except ArenaMetaError as e:
            items = []
            print(f"  Warning: card catalog refresh failed ({e})")

        costs = build_cost_map(items)
        if not costs:
            if self._costs is not None:
                # keep serving the stale index, retry in a minute
                self._expires_at = self._clock() + min(60, self.ttl_seconds)
                return self._costs
            raise ArenaMetaError("card catalog is empty and no previous index exists")

        self._costs = costs
        self._expires_at = self._clock() + self.ttl_seconds
        return costs

    def _current(self):
        if self._costs is None or self._clock() >= self._expires_at:
            return self.refresh()
        return self._costs

    def cost_of(self, name):
        """Elixir cost for a card, or None when unknown."""
        return self._current().get(normalize_card_key(name))


class StaticCostIndex:
    """Fallback index that knows no costs; every deck averages the default."""

    def cost_of(self, name):
        return None
