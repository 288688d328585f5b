from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any


def merge_object(existing: Mapping[str, Any] | None, incoming: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge ``incoming`` into a copy of ``existing``.

    ``None`` values in ``incoming`` never set anything, at any depth: they
    neither erase stored values nor get stored under new keys. Keys absent
    from ``incoming`` are kept and nested mappings are merged recursively.
    Neither argument is mutated and the result shares no mutable values
    with ``incoming``.
    """
    merged: dict[str, Any] = dict(existing or {})

    for key, value in (incoming or {}).items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            current = merged.get(key)
            merged[key] = merge_object(current if isinstance(current, Mapping) else {}, value)
        else:
            merged[key] = copy.deepcopy(value)

    return merged
