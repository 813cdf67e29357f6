"""Recording which data migrations have been applied."""

from __future__ import annotations

import re
from typing import Any

COLLECTION = "data_version"

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def check_version(coll: Any, key: str, current_version: int) -> bool:
    """Return True if the data under ``key`` is at ``current_version`` or later.

    ``coll`` is a document collection with ``find_one``. A stored value that
    is not an integer raises ValueError.
    """
    document = coll.find_one({"key": key})
    if document is None:
        return False
    value = document.get("value", "")
    if not isinstance(value, str) or _INTEGER_RE.fullmatch(value) is None:
        raise ValueError(f"version {value} parse error")
    return int(value) >= current_version


def set_version(coll: Any, key: str, version: int) -> None:
    """Store ``version`` for ``key``, creating the record if needed."""
    coll.update_one(
        {"key": key},
        {"$set": {"key": key, "value": str(version)}},
        upsert=True,
    )