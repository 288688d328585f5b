from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from loguru import logger as _default_logger

from lark_aily.http_transport import format_errors

PAGE_FIELDS = ("has_more", "page_token", "next_page_token")

# (headers, params, data) -> envelope
PageFetch = Callable[[dict[str, Any], dict[str, Any], dict[str, Any]], Awaitable[Mapping[str, Any] | None]]


def pick_truthy(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop empty strings, zeros, False and None before they hit the wire."""
    return {k: v for k, v in (values or {}).items() if v}


def strip_page_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in PAGE_FIELDS}


class PageIterator:
    """Forward-only async iterator over the pages of a list endpoint.

    Each element is a page's ``data`` payload without the cursor fields.
    A failed fetch produces a single ``None`` and ends the sequence; the
    error is never raised to the caller. The iterator cannot be restarted,
    build a new one to paginate again.
    """

    def __init__(
        self,
        fetch_page: PageFetch,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        logger=None,
    ):
        self._fetch_page = fetch_page
        self._params = dict(params or {})
        self._headers = dict(headers or {})
        self._data = dict(data or {})
        self._logger = logger or _default_logger
        self._has_more = True
        self._page_token: str | None = None
        self._pages_fetched = 0

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def page_token(self) -> str | None:
        return self._page_token

    def __aiter__(self) -> PageIterator:
        return self

    async def __anext__(self) -> dict[str, Any] | None:
        if not self._has_more:
            raise StopAsyncIteration

        params = pick_truthy({**self._params, "page_token": self._page_token})
        try:
            envelope = await self._fetch_page(pick_truthy(self._headers), params, self._data)
        except Exception as ex:
            self._has_more = False
            self._logger.error(format_errors(ex))
            self._logger.debug(f"Pagination stopped after {self._pages_fetched} page(s)")
            return None

        self._pages_fetched += 1
        if not isinstance(envelope, Mapping):
            envelope = {}
        code = envelope.get("code")
        if code:
            self._logger.warning(f"Page {self._pages_fetched} returned code={code} msg={envelope.get('msg')!r}")

        payload = envelope.get("data") or {}
        if not isinstance(payload, Mapping):
            self._logger.warning(f"Page {self._pages_fetched} data is a {type(payload).__name__}, treating it as empty")
            payload = {}
        self._has_more = bool(payload.get("has_more"))
        self._page_token = payload.get("page_token") or payload.get("next_page_token")
        return strip_page_fields(payload)
