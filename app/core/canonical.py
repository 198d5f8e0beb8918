"""Canonical serialization of credential payloads.

Two payloads are "the same credential" when their canonical JSON is
byte-identical: keys sorted at every depth, compact separators, and
non-ASCII kept as-is.  Lists keep their order, so ["read", "write"] and
["write", "read"] are different payloads.

Request bodies run through check_json_data first, so every payload that
reaches the store or cache can be written to a snapshot and echoed back
exactly as it was received.
"""

from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Mapping
from typing import Any


def canonical_json(data: Mapping[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def content_hash(data: Mapping[str, Any]) -> str:
    """SHA-256 hex digest of the canonical form, used as an index key."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def same_content(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    return canonical_json(a) == canonical_json(b)


def check_json_data(value: Any, path: str = "data") -> None:
    """Raise ValueError if `value` cannot survive a JSON round-trip unchanged.

    Python's json module accepts NaN/Infinity and lone surrogate escapes
    ("\\ud800"), but neither can be written back as standard UTF-8 JSON.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{path} contains a non-finite number")
    elif isinstance(value, str):
        _check_text(value, path)
    elif isinstance(value, Mapping):
        for key, item in value.items():
            _check_text(str(key), path)
            check_json_data(item, f"{path}.{key}")
    elif isinstance(value, list | tuple):
        for index, item in enumerate(value):
            check_json_data(item, f"{path}[{index}]")


def _check_text(text: str, path: str) -> None:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError(f"{path} contains an unpaired surrogate") from None
