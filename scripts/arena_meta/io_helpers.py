"""I/O operations — AWS table access and JSON file reading/writing."""

import json
import os
import sys

from arena_meta.constants import DYNAMO_TABLE, DYNAMO_REGION


# ─── AWS / DynamoDB ─────────────────────────────────────────────

def get_dynamo_table(table_name=DYNAMO_TABLE, region=DYNAMO_REGION):
    """Create DynamoDB table resource with retry-friendly config."""
    try:
        import boto3
        from botocore.config import Config
    except ImportError:
        print("Error: boto3 is required. Install with: pip install boto3")
        sys.exit(1)

    config = Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        read_timeout=120,
        connect_timeout=10,
    )
    dynamodb = boto3.resource("dynamodb", region_name=region, config=config)
    return dynamodb.Table(table_name)


# ─── JSON Files ─────────────────────────────────────────────────

def write_json(path, data, compact=False, quiet=False):
    """Write data to a JSON file atomically (temp file + rename).

    Readers see either the old file or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    with open(tmp, "w") as f:
        if compact:
            json.dump(data, f, separators=(",", ":"), default=str)
        else:
            json.dump(data, f, indent=2, default=str)
    os.replace(tmp, path)
    if not quiet:
        size_kb = path.stat().st_size / 1024
        print(f"  Wrote {path.name} ({size_kb:.0f} KB)")


def read_json(path, default=None):
    """Load a JSON file. Missing or corrupt files yield default."""
    if not path.exists():
        return default
    try:
        with open(path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError:
        print(f"  Warning: {path.name} is not valid JSON, ignoring")
        return default
