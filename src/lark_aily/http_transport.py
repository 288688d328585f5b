from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from lark_aily.version import __version__

_USER_AGENT = f"lark-aily-python/{__version__}"
_TIMEOUT_SECONDS = 30.0


@runtime_checkable
class Transport(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute one call and return the decoded ``{code, msg, data}`` envelope.

        Raises on network errors and HTTP error statuses.
        """
        ...


class HttpTransport:
    def __init__(self, *, timeout: float = _TIMEOUT_SECONDS, client: httpx.AsyncClient | None = None):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        request_headers = {"User-Agent": _USER_AGENT, **(headers or {})}

        response = await self._client.request(
            method,
            url,
            params=params or None,
            json=data or None,
            headers=request_headers,
        )

        if response.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code} from {method} {url}",
                request=response.request,
                response=response,
            )

        envelope = response.json()
        if not isinstance(envelope, dict):
            raise ValueError(f"Expected a JSON object from {method} {url}, got {type(envelope).__name__}")
        return envelope

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def format_errors(ex: BaseException) -> list[Any]:
    """Reduce an exception to the parts worth logging."""
    if isinstance(ex, httpx.HTTPStatusError):
        response = ex.response
        try:
            body: Any = response.json()
        except ValueError:
            body = None

        errors: list[Any] = [
            {
                "message": str(ex),
                "request": {"method": ex.request.method, "url": str(ex.request.url)},
                "response": {
                    "status": response.status_code,
                    "reason": response.reason_phrase,
                    "data": body if body is not None else response.text,
                },
            }
        ]
        if body:
            errors.append(body)
        return errors

    return [ex]
