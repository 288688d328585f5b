from lark_aily.aily.completions import Aily, Completions, SessionRecords
from lark_aily.aily.models import CompletionResult, ExecStatus, RunHandle, RunStatus
from lark_aily.aily.polling import RunPoller

__all__ = [
    "Aily",
    "CompletionResult",
    "Completions",
    "ExecStatus",
    "RunHandle",
    "RunPoller",
    "RunStatus",
    "SessionRecords",
]
