"""Snapshot stores — atomic replace-all persistence of pipeline output.

Each run is written under a fresh generation id; only once every row is
stored is the "current" pointer flipped to it. Readers always follow the
pointer, so they see the previous snapshot until the flip and never a
partially written one. The generation before the previous one is pruned.
"""

import json
import uuid
from datetime import datetime, timezone

from arena_meta.constants import SNAPSHOT_DIR, DYNAMO_CHUNK_SIZE
from arena_meta.io_helpers import write_json, read_json


def new_generation_id(now=None):
    now = now or datetime.now(timezone.utc)
    return f"{now.strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:8]}"


def make_snapshot(generation, meta_decks, counter_decks, stats=None, created_at=None):
    return {
        "generation": generation,
        "created_at": created_at or datetime.now(timezone.utc).isoformat(),
        "stats": stats or {},
        "meta_decks": list(meta_decks),
        "counter_decks": list(counter_decks),
    }


# ─── JSON files ─────────────────────────────────────────────────

class JsonSnapshotStore:
    """Snapshots as JSON files: generations/<id>.json plus current.json."""

    def __init__(self, root=SNAPSHOT_DIR, generation_factory=new_generation_id):
        self.root = root
        self.generations_dir = root / "generations"
        self.pointer_path = root / "current.json"
        self._generation_factory = generation_factory

    def _generation_path(self, generation):
        return self.generations_dir / f"{generation}.json"

    def current_generation(self):
        pointer = read_json(self.pointer_path)
        return pointer.get("generation") if isinstance(pointer, dict) else None

    def replace_all(self, meta_decks, counter_decks, stats=None):
        """Store a new snapshot and make it current. Returns its generation id."""
        previous = read_json(self.pointer_path) or {}
        generation = self._generation_factory()

        snapshot = make_snapshot(generation, meta_decks, counter_decks, stats)
        write_json(self._generation_path(generation), snapshot, compact=True)
        write_json(self.pointer_path, {
            "generation": generation,
            "previous": previous.get("generation"),
        }, quiet=True)

        self._prune(keep={generation, previous.get("generation")})
        return generation

    def _prune(self, keep):
        if not self.generations_dir.exists():
            return
        for path in self.generations_dir.glob("*.json"):
            if path.stem not in keep:
                path.unlink()

    def load_generation(self, generation):
        """A stored snapshot by generation id, or None if it was pruned."""
        return read_json(self._generation_path(generation))

    def load_current(self):
        """The current snapshot dict, or None if nothing was ever published."""
        generation = self.current_generation()
        if not generation:
            return None
        return self.load_generation(generation)


# ─── DynamoDB ───────────────────────────────────────────────────

def _chunks(rows, size):
    return [rows[i:i + size] for i in range(0, len(rows), size)]


class DynamoSnapshotStore:
    """Snapshots in a DynamoDB table keyed by (pk, sk).

    Rows are stored as JSON strings in chunked items under
    pk="snapshot#<generation>"; the pointer lives at pk="current", sk="pointer".
    """

    POINTER_KEY = {"pk": "current", "sk": "pointer"}

    def __init__(self, table, chunk_size=DYNAMO_CHUNK_SIZE, generation_factory=new_generation_id):
        self.table = table
        self.chunk_size = chunk_size
        self._generation_factory = generation_factory

    @staticmethod
    def _pk(generation):
        return f"snapshot#{generation}"

    def _pointer(self):
        return self.table.get_item(Key=self.POINTER_KEY).get("Item")

    def current_generation(self):
        pointer = self._pointer()
        return pointer.get("generation") if pointer else None

    def replace_all(self, meta_decks, counter_decks, stats=None):
        previous = self._pointer() or {}
        generation = self._generation_factory()
        pk = self._pk(generation)

        meta_chunks = _chunks(list(meta_decks), self.chunk_size)
        counter_chunks = _chunks(list(counter_decks), self.chunk_size)

        with self.table.batch_writer() as batch:
            batch.put_item(Item={
                "pk": pk, "sk": "header",
                "created_at": datetime.now(timezone.utc).isoformat(),
                "stats": json.dumps(stats or {}),
                "meta_chunks": len(meta_chunks),
                "counter_chunks": len(counter_chunks),
            })
            for i, chunk in enumerate(meta_chunks):
                batch.put_item(Item={"pk": pk, "sk": f"meta#{i:05d}", "rows": json.dumps(chunk)})
            for i, chunk in enumerate(counter_chunks):
                batch.put_item(Item={"pk": pk, "sk": f"counter#{i:05d}", "rows": json.dumps(chunk)})

        # Flip only after every chunk is durable
        pointer = {
            **self.POINTER_KEY,
            "generation": generation,
            "meta_chunks": len(meta_chunks),
            "counter_chunks": len(counter_chunks),
        }
        if previous.get("generation"):
            pointer["previous"] = {
                "generation": previous["generation"],
                "meta_chunks": int(previous.get("meta_chunks", 0)),
                "counter_chunks": int(previous.get("counter_chunks", 0)),
            }
        self.table.put_item(Item=pointer)
        print(f"  Stored snapshot {generation} "
              f"({len(meta_chunks)} meta + {len(counter_chunks)} counter chunks)")

        stale = previous.get("previous")
        if stale:
            self._delete_generation(stale)
        return generation

    def _delete_generation(self, info):
        pk = self._pk(info["generation"])
        with self.table.batch_writer() as batch:
            batch.delete_item(Key={"pk": pk, "sk": "header"})
            for i in range(int(info.get("meta_chunks", 0))):
                batch.delete_item(Key={"pk": pk, "sk": f"meta#{i:05d}"})
            for i in range(int(info.get("counter_chunks", 0))):
                batch.delete_item(Key={"pk": pk, "sk": f"counter#{i:05d}"})

    def _load_rows(self, pk, prefix, count):
        rows = []
        for i in range(count):
            item = self.table.get_item(Key={"pk": pk, "sk": f"{prefix}#{i:05d}"}).get("Item")
            if item is None:
                raise KeyError(f"snapshot chunk {pk}/{prefix}#{i:05d} missing")
            rows.extend(json.loads(item["rows"]))
        return rows

    def load_generation(self, generation):
        """A stored snapshot by generation id, or None if it was pruned."""
        pk = self._pk(generation)
        header = self.table.get_item(Key={"pk": pk, "sk": "header"}).get("Item")
        if header is None:
            return None
        return make_snapshot(
            generation,
            self._load_rows(pk, "meta", int(header.get("meta_chunks", 0))),
            self._load_rows(pk, "counter", int(header.get("counter_chunks", 0))),
            stats=json.loads(header.get("stats", "{}")),
            created_at=header.get("created_at"),
        )

    def load_current(self):
        pointer = self._pointer()
        if not pointer:
            return None
        return self.load_generation(pointer["generation"])
