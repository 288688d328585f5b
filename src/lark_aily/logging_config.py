import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

# Every record carries the conversation it belongs to, "-" outside one.
_CONSOLE_FORMAT = (
    "<level>{level:<8}</level> | <magenta>{extra[session]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[session]} | {name}:{function}:{line} - {message}"

_DEFAULT_CONSUMERS = [{"type": "console", "only": "lark_aily"}]


def _console_sink(level: str, only: str | None = None) -> str:
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, filter=only)
    scope = f", {only} only" if only else ""
    return f"console (stderr, {level}{scope})"


def _file_sink(
    level: str,
    path: str = "lark_aily.log",
    rotation: str = "10 MB",
    retention: int = 3,
    json: bool = False,
    only: str | None = None,
) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        level=level,
        format=_FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        serialize=json,
        filter=only,
    )
    return f"file ({path}, {level}{', json lines' if json else ''})"


_SINKS: dict[str, Callable[..., str]] = {
    "console": _console_sink,
    "file": _file_sink,
}


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    session: str = "-",
) -> list[str]:
    """Replace loguru's sinks with the configured ones.

    ``consumers`` entries look like ``{"type": "file", "path": ..., "level": ...}``;
    ``only`` limits a sink to one module prefix and ``json`` makes a file sink
    write one serialized record per line. ``session`` is bound as
    ``extra["session"]`` so each line names the conversation it came from.
    Returns a description of each registered sink.
    """
    logger.remove()
    logger.configure(extra={"session": session})

    descriptions: list[str] = []
    for config in consumers if consumers is not None else _DEFAULT_CONSUMERS:
        sink_type = config.get("type", "")
        register = _SINKS.get(sink_type)
        if register is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue

        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        descriptions.append(register(config.get("level", level), **options))

    return descriptions
