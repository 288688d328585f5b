from __future__ import annotations

from typing import TYPE_CHECKING, Any

from lark_aily.pagination import PageIterator

if TYPE_CHECKING:
    from lark_aily.client import Client

_SESSIONS = "/open-apis/aily/v1/sessions"
_SESSION = "/open-apis/aily/v1/sessions/:aily_session_id"
_MESSAGES = "/open-apis/aily/v1/sessions/:aily_session_id/messages"
_MESSAGE = "/open-apis/aily/v1/sessions/:aily_session_id/messages/:aily_message_id"
_RUNS = "/open-apis/aily/v1/sessions/:aily_session_id/runs"
_RUN = "/open-apis/aily/v1/sessions/:aily_session_id/runs/:run_id"
_RUN_CANCEL = "/open-apis/aily/v1/sessions/:aily_session_id/runs/:run_id/cancel"

Payload = dict[str, Any]


class _Resource:
    def __init__(self, client: Client):
        self._client = client


class AilySessionResource(_Resource):
    """aily_session: one conversation with an aily app."""

    async def create(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("POST", _SESSIONS, payload, options)

    async def get(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("GET", _SESSION, payload, options)

    async def update(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("PUT", _SESSION, payload, options)

    async def delete(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("DELETE", _SESSION, payload, options)


class AilyMessageResource(_Resource):
    """aily_session.aily_message"""

    async def create(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("POST", _MESSAGES, payload, options)

    async def get(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("GET", _MESSAGE, payload, options)

    async def list(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("GET", _MESSAGES, payload, options)

    def list_with_iterator(self, payload: Payload | None = None, options: Payload | None = None) -> PageIterator:
        return self._client.paginate(_MESSAGES, payload, options)


class AilyRunResource(_Resource):
    """aily_session.run"""

    async def create(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("POST", _RUNS, payload, options)

    async def get(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("GET", _RUN, payload, options)

    async def list(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("GET", _RUNS, payload, options)

    def list_with_iterator(self, payload: Payload | None = None, options: Payload | None = None) -> PageIterator:
        return self._client.paginate(_RUNS, payload, options)

    async def cancel(self, payload: Payload | None = None, options: Payload | None = None) -> dict[str, Any]:
        return await self._client.request("POST", _RUN_CANCEL, payload, options)


class AilyV1:
    def __init__(self, client: Client):
        self.session = AilySessionResource(client)
        self.message = AilyMessageResource(client)
        self.run = AilyRunResource(client)


class AilyApi:
    def __init__(self, client: Client):
        self.v1 = AilyV1(client)
