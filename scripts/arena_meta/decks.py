"""Deck normalization and classification.

Pure functions over card-name lists. No I/O, no module state.
"""

from arena_meta.constants import DEFAULT_AVG_ELIXIR

DECK_KEY_SEPARATOR = "|"

# Checked in order; the first signature card present names the archetype
ARCHETYPE_RULES = [
    (("golem",), "Golem Beatdown"),
    (("lava hound",), "LavaLoon"),
    (("giant skeleton",), "Giant Skeleton"),
    (("x-bow",), "X-Bow Cycle"),
    (("mortar",), "Mortar Cycle"),
    (("hog rider",), "Hog Cycle"),
    (("royal giant",), "Royal Giant"),
    (("giant",), "Giant Beatdown"),
    (("p.e.k.k.a",), "P.E.K.K.A Bridge Spam"),
    (("elixir golem",), "Elixir Golem"),
    (("three musketeers",), "3M Split"),
    (("graveyard",), "Graveyard Control"),
    (("mega knight",), "Mega Knight"),
    (("royal hogs",), "Royal Hogs"),
    (("miner", "wall breakers"), "Miner WallBreakers"),
    (("balloon",), "Balloon Cycle"),
    (("goblin barrel",), "Log Bait"),
    (("sparky",), "Sparky"),
]
DEFAULT_ARCHETYPE = "Custom"

WIN_CONDITIONS = [
    "Hog Rider", "Royal Giant", "Graveyard", "Golem", "Lava Hound", "X-Bow",
    "Mortar", "Goblin Barrel", "Miner", "Balloon", "Giant", "Ram Rider",
    "Battle Ram", "Elixir Golem", "Goblin Giant", "Skeleton Barrel",
    "Royal Hogs", "Three Musketeers",
]


def normalize_card_key(name):
    """Trimmed, lowercased card name. Non-strings become ''."""
    if not isinstance(name, str):
        return ""
    return name.strip().lower()


def normalize_deck_key(cards):
    """Canonical order-independent key for a card list.

    Names are trimmed and lowercased, empties dropped, then sorted and joined.
    Does not check the deck size; callers that need exactly 8 cards check it.
    """
    keys = [normalize_card_key(c) for c in cards or []]
    return DECK_KEY_SEPARATOR.join(sorted(k for k in keys if k))


def deck_cards_from_key(deck_key):
    """Recover the (lowercased) card list from a deck key."""
    if not deck_key:
        return []
    return [c for c in deck_key.split(DECK_KEY_SEPARATOR) if c]


def classify_archetype(cards):
    """Label a deck by its signature cards. Falls back to 'Custom'."""
    card_set = {normalize_card_key(c) for c in cards or []}
    for signature, label in ARCHETYPE_RULES:
        if all(card in card_set for card in signature):
            return label
    return DEFAULT_ARCHETYPE


def detect_win_condition(cards):
    """Return the first known win-condition card in the deck, or None."""
    card_set = {normalize_card_key(c) for c in cards or []}
    for wc in WIN_CONDITIONS:
        if normalize_card_key(wc) in card_set:
            return wc
    return None


def compute_avg_elixir(cards, cost_index):
    """Average elixir over cards with a known cost, clamped to [1, 8].

    Unknown cards are skipped; a deck with no known costs gets the default.
    """
    costs = []
    for name in cards or []:
        cost = cost_index.cost_of(name) if cost_index is not None else None
        if cost is not None:
            costs.append(cost)
    avg = sum(costs) / len(costs) if costs else DEFAULT_AVG_ELIXIR
    return max(1.0, min(8.0, round(avg, 2)))
