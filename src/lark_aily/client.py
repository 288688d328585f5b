from __future__ import annotations

import re
from enum import Enum
from typing import Any

from loguru import logger as _default_logger

from lark_aily.api.aily import AilyApi
from lark_aily.http_transport import HttpTransport, Transport, format_errors
from lark_aily.pagination import PageIterator

_PAYLOAD_KEYS = ("params", "data", "headers", "path")
_PATH_ARGUMENT = re.compile(r":([^/]+)")


class Domain(str, Enum):
    FEISHU = "https://open.feishu.cn"
    LARK = "https://open.larksuite.com"


_DOMAIN_ALIASES = {
    "feishu": Domain.FEISHU,
    "lark": Domain.LARK,
}


def format_domain(domain: Domain | str) -> str:
    if isinstance(domain, Domain):
        return domain.value
    alias = _DOMAIN_ALIASES.get(domain.strip().lower())
    if alias is not None:
        return alias.value
    return domain.strip().rstrip("/")


def format_url(url: str) -> str:
    return url.lstrip("/")


def fill_api_path(api_path: str, path: dict[str, Any] | None = None) -> str:
    """Substitute ``:name`` segments of ``api_path`` with values from ``path``."""
    path = path or {}

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if path.get(name) is None:
            raise ValueError(f"request miss {name} path argument")
        return str(path[name])

    return _PATH_ARGUMENT.sub(_replace, api_path)


class Client:
    """Entry point to the open platform API.

    Endpoint groups hang off the instance (``client.aily.v1``); they all go
    through :meth:`request` for single calls and :meth:`paginate` for
    cursor-paginated listings.
    """

    def __init__(
        self,
        domain: Domain | str = Domain.FEISHU,
        *,
        access_token: str | None = None,
        transport: Transport | None = None,
        logger=None,
        timeout: float = 30.0,
    ):
        self.logger = logger or _default_logger
        self.domain = format_domain(domain)
        self._access_token = access_token
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpTransport(timeout=timeout)

        self.aily = AilyApi(self)

        self.logger.debug(f"use domain url: {self.domain}")
        self.logger.info("client ready")

    def format_payload(
        self,
        payload: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> dict[str, dict[str, Any]]:
        payload = payload or {}
        options = options or {}

        merged = {
            key: {**(payload.get(key) or {}), **(options.get(key) or {})}
            for key in _PAYLOAD_KEYS
        }
        if self._access_token and "Authorization" not in merged["headers"]:
            merged["headers"]["Authorization"] = f"Bearer {self._access_token}"
        return merged

    def build_url(self, api_path: str, path: dict[str, Any] | None = None) -> str:
        filled = fill_api_path(api_path, path)
        if re.match(r"^https?://", filled):
            return filled
        return f"{self.domain}/{format_url(filled)}"

    async def request(
        self,
        method: str,
        api_path: str,
        payload: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        formatted = self.format_payload(payload, options)
        url = self.build_url(api_path, formatted["path"])

        self.logger.trace(f"send request [{method}]: {url}")
        try:
            return await self._transport.request(
                method,
                url,
                params=formatted["params"],
                data=formatted["data"],
                headers=formatted["headers"],
            )
        except Exception as ex:
            self.logger.error(format_errors(ex))
            raise

    def paginate(
        self,
        api_path: str,
        payload: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> PageIterator:
        formatted = self.format_payload(payload, options)
        url = self.build_url(api_path, formatted["path"])

        async def fetch_page(headers: dict[str, Any], params: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
            self.logger.trace(f"send request [GET]: {url}")
            return await self._transport.request("GET", url, params=params, data=data, headers=headers)

        return PageIterator(
            fetch_page,
            params=formatted["params"],
            headers=formatted["headers"],
            data=formatted["data"],
            logger=self.logger,
        )

    async def aclose(self) -> None:
        if self._owns_transport and hasattr(self._transport, "aclose"):
            await self._transport.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
