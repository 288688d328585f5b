from lark_aily.aily import Aily, CompletionResult, ExecStatus
from lark_aily.cache import Cache, SessionCache
from lark_aily.client import Client, Domain
from lark_aily.pagination import PageIterator
from lark_aily.version import __version__

__all__ = [
    "Aily",
    "Cache",
    "Client",
    "CompletionResult",
    "Domain",
    "ExecStatus",
    "PageIterator",
    "SessionCache",
    "__version__",
]
