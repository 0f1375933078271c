"""loguru sinks for chatgpt-desk.

``LogConsumers`` in config.json is a list of sink entries such as
``{"type": "file", "path": "debug.log", "level": "DEBUG"}``. Relative file
paths are placed in the data directory next to the message store. The console
sink shares stderr with the shell, so by default it only shows warnings.
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

LOG_FILE_NAME = "chatgpt-desk.log"

_CONSOLE_FORMAT = "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {thread.name} | {name}:{function}:{line} - {message}"


def _add_console(level: str, options: dict[str, Any], log_dir: Path) -> str:
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, colorize=options.get("colorize"))
    return f"console (stderr, {level})"


def _add_file(level: str, options: dict[str, Any], log_dir: Path) -> str:
    path = Path(options.get("path") or LOG_FILE_NAME).expanduser()
    if not path.is_absolute():
        path = log_dir / path
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(path),
        level=level,
        format=_FILE_FORMAT,
        rotation=options.get("rotation", "10 MB"),
        retention=options.get("retention", 3),
        encoding="utf-8",
    )
    return f"file ({path}, {level})"


_SINK_BUILDERS: dict[str, Callable[[str, dict[str, Any], Path], str]] = {
    "console": _add_console,
    "file": _add_file,
}


def default_log_consumers(level: str) -> list[dict[str, Any]]:
    return [
        {"type": "console", "level": "WARNING"},
        {"type": "file", "path": LOG_FILE_NAME, "level": level},
    ]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    log_dir: Path,
) -> list[str]:
    """Replace loguru's sinks with the configured ones. Returns a description of each sink."""
    logger.remove()

    if consumers is None:
        consumers = default_log_consumers(level)

    descriptions: list[str] = []
    unknown: list[str] = []

    for entry in consumers:
        sink_type = str(entry.get("type", ""))
        builder = _SINK_BUILDERS.get(sink_type)
        if builder is None:
            unknown.append(sink_type)
            continue
        descriptions.append(builder(entry.get("level", level), entry, log_dir))

    for sink_type in unknown:
        logger.warning(f"Unknown log consumer type: {sink_type!r}")

    return descriptions
