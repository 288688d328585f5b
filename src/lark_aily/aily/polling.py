from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, stop_never, wait_fixed

from lark_aily.aily.models import PENDING_RUN_STATUSES, TERMINAL_RUN_STATUSES, ExecStatus

if TYPE_CHECKING:
    from lark_aily.client import Client

DEFAULT_POLL_INTERVAL_SECONDS = 0.5


def _still_running(status: ExecStatus | None) -> bool:
    return status is None


class RunPoller:
    """Polls a run until it reaches a terminal status.

    ``max_attempts=None`` polls forever, which matches the platform SDKs.
    With a cap, a run that is still queued or in progress when the cap is
    reached is reported as ``ExecStatus.EXPIRED``.
    """

    def __init__(
        self,
        client: Client,
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int | None = None,
    ):
        if interval < 0:
            raise ValueError(f"poll interval must be >= 0, got {interval}")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max poll attempts must be >= 1, got {max_attempts}")
        self._client = client
        self._logger = client.logger
        self._interval = interval
        self._max_attempts = max_attempts

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def max_attempts(self) -> int | None:
        return self._max_attempts

    async def wait(self, session_id: str, run_id: str, options: dict[str, Any] | None = None) -> ExecStatus:
        retrying = AsyncRetrying(
            retry=retry_if_result(_still_running),
            wait=wait_fixed(self._interval),
            stop=stop_after_attempt(self._max_attempts) if self._max_attempts else stop_never,
            before_sleep=self._on_still_running,
            retry_error_callback=self._on_exhausted,
        )

        await asyncio.sleep(self._interval)
        return await retrying(self.check_once, session_id, run_id, options)

    async def check_once(
        self,
        session_id: str,
        run_id: str,
        options: dict[str, Any] | None = None,
    ) -> ExecStatus | None:
        """Fetch the run once. Returns ``None`` while it is still running."""
        try:
            res = await self._client.aily.v1.run.get(
                {"path": {"aily_session_id": session_id, "run_id": run_id}},
                options,
            )
        except Exception:
            return ExecStatus.FAILED

        if not (res.get("code") == 0 and res.get("data")):
            self._logger.error(f"get aily run status error: {res.get('msg')}")
            return ExecStatus.FAILED

        status = (res["data"].get("run") or {}).get("status")
        if status in PENDING_RUN_STATUSES:
            return None
        return TERMINAL_RUN_STATUSES.get(status, ExecStatus.OTHER)

    def _on_still_running(self, retry_state) -> None:
        run_id = retry_state.args[1] if len(retry_state.args) > 1 else "?"
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        self._logger.debug(f"Run {run_id} still running. Polling again in {wait:.2f}s (attempt {retry_state.attempt_number})")

    def _on_exhausted(self, retry_state) -> ExecStatus:
        run_id = retry_state.args[1] if len(retry_state.args) > 1 else "?"
        self._logger.error(f"Run {run_id} still running after {retry_state.attempt_number} poll(s); giving up")
        return ExecStatus.EXPIRED
