"""Per-player battle history — the stored input of the season stats queries.

One JSON file per user. Re-syncing the same battle log is idempotent:
battles are keyed by a hash of their identifying fields.
"""

import hashlib
import json
import re

from arena_meta.constants import HISTORY_DIR
from arena_meta.io_helpers import write_json, read_json


def normalize_tag(tag):
    """'  #abc ' → '#ABC'."""
    clean = str(tag or "").strip().lstrip("#").upper()
    return f"#{clean}" if clean else ""


def _card_ids(entry):
    cards = entry.get("cards") if isinstance(entry, dict) else None
    ids = [c.get("id") for c in cards or [] if isinstance(c, dict)]
    return sorted(i for i in ids if isinstance(i, int) and not isinstance(i, bool))


def _first_entry(side):
    if isinstance(side, list) and side and isinstance(side[0], dict):
        return side[0]
    return {}


def build_battle_key(user_id, player_tag, battle):
    """Stable SHA-256 key for a battle as seen by one user."""
    team = _first_entry(battle.get("team"))
    opponent = _first_entry(battle.get("opponent"))
    mode = battle.get("gameMode") if isinstance(battle.get("gameMode"), dict) else {}
    canonical = {
        "u": user_id,
        "p": normalize_tag(player_tag),
        "t": battle.get("battleTime"),
        "type": battle.get("type"),
        "mode": mode.get("id", mode.get("name")),
        "teamTag": team.get("tag"),
        "oppTag": opponent.get("tag"),
        "teamCrowns": team.get("crowns"),
        "oppCrowns": opponent.get("crowns"),
        "trophyChange": team.get("trophyChange"),
        "teamCards": _card_ids(team),
        "oppCards": _card_ids(opponent),
    }
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _safe_filename(user_id):
    return re.sub(r"[^A-Za-z0-9_.-]", "_", str(user_id)) + ".json"


class PlayerHistoryStore:
    """Stored battle logs per user: {"player_tag", "battles": {key: battle}}."""

    def __init__(self, root=HISTORY_DIR):
        self.root = root

    def _path(self, user_id):
        return self.root / _safe_filename(user_id)

    def _load_doc(self, user_id):
        doc = read_json(self._path(user_id), default=None)
        if not isinstance(doc, dict):
            return {"player_tag": None, "battles": {}}
        doc.setdefault("battles", {})
        return doc

    def load(self, user_id):
        """All stored raw battles for a user, newest first."""
        battles = list(self._load_doc(user_id)["battles"].values())
        battles.sort(key=lambda b: str(b.get("battleTime") or ""), reverse=True)
        return battles

    def player_tag(self, user_id):
        return self._load_doc(user_id).get("player_tag")

    def merge(self, user_id, player_tag, battles):
        """Add new battles to a user's history. Returns how many were new."""
        doc = self._load_doc(user_id)
        doc["player_tag"] = normalize_tag(player_tag)
        added = 0
        for battle in battles or []:
            if not isinstance(battle, dict):
                continue
            key = build_battle_key(user_id, player_tag, battle)
            if key in doc["battles"]:
                continue
            doc["battles"][key] = battle
            added += 1
        if added:
            write_json(self._path(user_id), doc, compact=True, quiet=True)
        return added
