from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable

from lark_aily.merge import merge_object


@runtime_checkable
class Cache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> bool: ...


class SessionCache:
    """In-memory cache whose writes merge into the stored mapping."""

    def __init__(self) -> None:
        self._values: dict[str, dict[str, Any]] = {}

    async def set(self, key: str, value: dict[str, Any]) -> bool:
        stored = self._values.get(str(key), {})
        self._values[str(key)] = merge_object(stored, value)
        return True

    async def get(self, key: str) -> dict[str, Any] | None:
        stored = self._values.get(str(key))
        if stored is None:
            return None
        return copy.deepcopy(stored)
