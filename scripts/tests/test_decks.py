"""Category A: Deck Normalization & Classification Tests

Deck keys must be order- and case-independent; archetype and elixir
derivations must be deterministic.
"""

from helpers import DECK_GOLEM, DECK_HOG, CARD_ITEMS

from arena_meta.card_index import CardCostIndex, StaticCostIndex
from arena_meta.decks import (
    normalize_card_key,
    normalize_deck_key,
    deck_cards_from_key,
    classify_archetype,
    detect_win_condition,
    compute_avg_elixir,
)


# ─── A1: Deck keys are canonical ────────────────────────────────

class TestA1_DeckKey:

    def test_sorted_lowercased(self):
        assert normalize_deck_key(["Hog Rider", " Zap ", "Fireball"]) == "fireball|hog rider|zap"

    def test_order_independent(self):
        assert normalize_deck_key(DECK_HOG) == normalize_deck_key(list(reversed(DECK_HOG)))

    def test_case_independent(self):
        assert normalize_deck_key([c.upper() for c in DECK_HOG]) == normalize_deck_key(DECK_HOG)

    def test_empty_names_dropped(self):
        assert normalize_deck_key(["Zap", "", "  "]) == "zap"

    def test_none_is_empty(self):
        assert normalize_deck_key(None) == ""

    def test_non_string_card_key(self):
        assert normalize_card_key(None) == ""
        assert normalize_card_key(42) == ""

    def test_key_back_to_cards(self):
        key = normalize_deck_key(DECK_GOLEM)
        assert deck_cards_from_key(key) == sorted(c.lower() for c in DECK_GOLEM)
        assert deck_cards_from_key("") == []


# ─── A2: Archetype priority ─────────────────────────────────────

class TestA2_Archetype:

    def test_first_rule_wins(self):
        assert classify_archetype(["Golem", "Hog Rider"]) == "Golem Beatdown"

    def test_royal_giant_before_giant(self):
        assert classify_archetype(["Royal Giant", "Giant"]) == "Royal Giant"
        assert classify_archetype(["Giant"]) == "Giant Beatdown"

    def test_elixir_golem_is_not_golem(self):
        assert classify_archetype(["Elixir Golem", "Battle Healer"]) == "Elixir Golem"

    def test_miner_needs_wall_breakers(self):
        assert classify_archetype(["Miner", "Wall Breakers"]) == "Miner WallBreakers"
        assert classify_archetype(["Miner", "Poison"]) == "Custom"

    def test_case_insensitive(self):
        assert classify_archetype(["hog rider"]) == "Hog Cycle"

    def test_default(self):
        assert classify_archetype([]) == "Custom"
        assert classify_archetype(None) == "Custom"


# ─── A3: Win condition ──────────────────────────────────────────

class TestA3_WinCondition:

    def test_found(self):
        assert detect_win_condition(DECK_HOG) == "Hog Rider"

    def test_none(self):
        assert detect_win_condition(["Zap", "Knight"]) is None


# ─── A4: Average elixir ─────────────────────────────────────────

class TestA4_AvgElixir:

    def test_known_costs(self):
        index = CardCostIndex.from_items(CARD_ITEMS)
        assert compute_avg_elixir(DECK_GOLEM, index) == 4.25

    def test_unknown_cards_skipped(self):
        index = CardCostIndex.from_items(CARD_ITEMS)
        assert compute_avg_elixir(["Hog Rider", "The Log", "Mystery Card"], index) == 3.0

    def test_default_when_nothing_known(self):
        index = CardCostIndex.from_items(CARD_ITEMS)
        assert compute_avg_elixir(["Mystery Card"], index) == 3.5
        assert compute_avg_elixir(DECK_HOG, StaticCostIndex()) == 3.5

    def test_clamped(self):
        high = CardCostIndex.from_items([{"name": "Huge", "elixirCost": 9}])
        low = CardCostIndex.from_items([{"name": "Free", "elixirCost": 0}])
        assert compute_avg_elixir(["Huge"], high) == 8.0
        assert compute_avg_elixir(["Free"], low) == 1.0

    def test_two_decimals(self):
        index = CardCostIndex.from_items([
            {"name": "A", "elixirCost": 1},
            {"name": "B", "elixirCost": 1},
            {"name": "C", "elixirCost": 2},
        ])
        assert compute_avg_elixir(["A", "B", "C"], index) == 1.33
