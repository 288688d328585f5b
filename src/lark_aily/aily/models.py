from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any


class ExecStatus(IntEnum):
    ERROR = -1
    SUCCESS = 0
    EXPIRED = 1
    CANCELLED = 2
    FAILED = 3
    OTHER = 4


class RunStatus(str, Enum):
    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


PENDING_RUN_STATUSES = frozenset({RunStatus.QUEUED.value, RunStatus.IN_PROGRESS.value})

TERMINAL_RUN_STATUSES = {
    RunStatus.COMPLETED.value: ExecStatus.SUCCESS,
    RunStatus.EXPIRED.value: ExecStatus.EXPIRED,
    RunStatus.CANCELLED.value: ExecStatus.CANCELLED,
    RunStatus.FAILED.value: ExecStatus.FAILED,
}

ASSISTANT_SENDER = "ASSISTANT"


@dataclass(frozen=True)
class RunHandle:
    session_id: str
    run_id: str
    message_id: str | None


@dataclass(frozen=True)
class CompletionResult:
    code: ExecStatus
    message: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.code is ExecStatus.SUCCESS
