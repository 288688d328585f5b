from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from lark_aily.aily.models import ASSISTANT_SENDER, CompletionResult, ExecStatus, RunHandle
from lark_aily.aily.polling import DEFAULT_POLL_INTERVAL_SECONDS, RunPoller
from lark_aily.cache import Cache, SessionCache

if TYPE_CHECKING:
    from lark_aily.client import Client

SESSION_RECORD_KEY = "aily_session_record"
MESSAGE_CONTENT_TYPE = "MDX"


class _StepFailed(Exception):
    def __init__(self, code: ExecStatus):
        super().__init__(code.name)
        self.code = code


def _idempotent_id() -> str:
    return str(int(time.time() * 1000))


def _succeeded(res: dict[str, Any]) -> bool:
    return res.get("code") == 0 and bool(res.get("data"))


class SessionRecords:
    """Caller session key -> aily session id, kept in the cache under one key."""

    def __init__(self, cache: Cache):
        self._cache = cache

    async def get(self) -> dict[str, str]:
        return await self._cache.get(SESSION_RECORD_KEY) or {}

    async def update(self, records: dict[str, str]) -> bool:
        return await self._cache.set(SESSION_RECORD_KEY, records)


class Completions:
    def __init__(self, client: Client, cache: Cache, poller: RunPoller):
        self._client = client
        self._logger = client.logger
        self._poller = poller
        self.session_records = SessionRecords(cache)

    async def get_session_id(
        self,
        session_key: str | None = None,
        session_info: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> str | None:
        records = await self.session_records.get()
        if session_key and session_key in records:
            return records[session_key]

        res = await self._client.aily.v1.session.create({"data": session_info or {}}, options)
        if not _succeeded(res):
            self._logger.error(f"get aily session id error: {res.get('msg')}")
            return None

        session_id = (res["data"].get("session") or {}).get("id")
        if session_key and session_id:
            await self.session_records.update({session_key: session_id})
        return session_id

    async def create(
        self,
        *,
        message: str,
        app_id: str,
        session_key: str | None = None,
        session_info: dict[str, Any] | None = None,
        message_info: dict[str, Any] | None = None,
        skill_id: str | None = None,
        run_info: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> CompletionResult:
        """Send ``message`` to the aily app, wait for the run and return the reply.

        Never raises for transport or API failures; the outcome is carried by
        ``CompletionResult.code``.
        """
        try:
            handle = await self._start_run(
                message=message,
                app_id=app_id,
                session_key=session_key,
                session_info=session_info,
                message_info=message_info,
                skill_id=skill_id,
                run_info=run_info,
                options=options,
            )

            status = await self._poller.wait(handle.session_id, handle.run_id, options)
            if status is not ExecStatus.SUCCESS:
                self._logger.error(f"aily run {handle.run_id} finished with {status.name}")
                return CompletionResult(code=status)

            reply = await self._find_reply(handle, options)
        except _StepFailed as failure:
            return CompletionResult(code=failure.code)
        except Exception as ex:
            self._logger.error(f"aily completion failed: {ex!r}")
            return CompletionResult(code=ExecStatus.ERROR)

        if reply is None:
            self._logger.error("no aily reply")
            return CompletionResult(code=ExecStatus.ERROR)
        return CompletionResult(code=ExecStatus.SUCCESS, message=reply)

    async def create_with_stream(self, **kwargs: Any):
        raise NotImplementedError("streaming completions are not supported")

    async def _start_run(
        self,
        *,
        message: str,
        app_id: str,
        session_key: str | None,
        session_info: dict[str, Any] | None,
        message_info: dict[str, Any] | None,
        skill_id: str | None,
        run_info: dict[str, Any] | None,
        options: dict[str, Any] | None,
    ) -> RunHandle:
        session_id = await self.get_session_id(session_key, session_info, options)
        if not session_id:
            raise _StepFailed(ExecStatus.ERROR)

        path = {"aily_session_id": session_id}

        message_res = await self._client.aily.v1.message.create(
            {
                "path": path,
                "data": {
                    **(message_info or {}),
                    "content": message,
                    "idempotent_id": _idempotent_id(),
                    "content_type": MESSAGE_CONTENT_TYPE,
                },
            },
            options,
        )
        if not _succeeded(message_res):
            self._logger.error(f"create aily message error: {message_res.get('msg')}")
            raise _StepFailed(ExecStatus.ERROR)
        message_id = (message_res["data"].get("message") or {}).get("id")

        run_data = {"app_id": app_id, "skill_id": skill_id, **(run_info or {})}
        run_res = await self._client.aily.v1.run.create(
            {"path": path, "data": {k: v for k, v in run_data.items() if v is not None}},
            options,
        )
        if not _succeeded(run_res):
            self._logger.error(f"create aily session run error: {run_res.get('msg')}")
            raise _StepFailed(ExecStatus.ERROR)

        run_id = (run_res["data"].get("run") or {}).get("id")
        if not run_id:
            self._logger.error("run id is empty")
            raise _StepFailed(ExecStatus.ERROR)

        return RunHandle(session_id=session_id, run_id=run_id, message_id=message_id)

    async def _find_reply(self, handle: RunHandle, options: dict[str, Any] | None) -> dict[str, Any] | None:
        pages = self._client.aily.v1.message.list_with_iterator(
            {
                "path": {"aily_session_id": handle.session_id},
                "params": {"run_id": handle.run_id, "with_partial_message": False},
            },
            options,
        )

        reply = None
        async for page in pages:
            if page is None:
                continue
            for message in page.get("messages") or []:
                if (message.get("sender") or {}).get("sender_type") == ASSISTANT_SENDER:
                    reply = message
        return reply


class Aily:
    """Completions over aily sessions.

    Without an explicit ``cache`` the session records live in a fresh
    in-memory :class:`SessionCache` owned by this instance.
    """

    def __init__(
        self,
        client: Client,
        cache: Cache | None = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_poll_attempts: int | None = None,
    ):
        self.client = client
        self.logger = client.logger
        self.cache: Cache = cache if cache is not None else SessionCache()
        self.poller = RunPoller(client, interval=poll_interval, max_attempts=max_poll_attempts)
        self.completions = Completions(client, self.cache, self.poller)
