"""Shared export shard builders for tests."""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Any


def typed_item(pk: str, sk: str, **attributes: dict[str, Any]) -> dict[str, Any]:
    """Build a typed-attribute item with string keys.

    Args:
        pk: Partition key value.
        sk: Sort key value.
        **attributes: Extra typed attributes, e.g. ``name={"S": "Ann"}``.

    Returns:
        Typed-attribute map as found under ``Item`` in export lines.
    """
    return {"pk": {"S": pk}, "sk": {"S": sk}, **attributes}


def export_line(item: dict[str, Any]) -> str:
    """Render one export line for a typed item."""
    return json.dumps({"Item": item})


def shard_bytes(lines: list[str]) -> bytes:
    """Compress export lines into shard bytes."""
    return gzip.compress(("\n".join(lines) + "\n").encode("utf-8"))


def write_shard(path: Path, lines: list[str]) -> Path:
    """Write a gzip export shard to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(shard_bytes(lines))
    return path
