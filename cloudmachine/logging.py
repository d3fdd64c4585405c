"""loguru setup for cloudmachine.

Modules log through ``logger.bind(component=...)``. Nothing is emitted until
``setup_logging`` runs, which the CLI does once per process:

    ids = setup_logging(LogConfig(level="DEBUG", file="cloudmachine.log"))
    try:
        ...
    finally:
        teardown_logging(ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypeAlias

from loguru import logger

_PACKAGE = "cloudmachine"

logger.disable(_PACKAGE)

LogLevel: TypeAlias = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

# Bound keys appended to every line after the message
_CONTEXT_KEYS = ("machine", "instance_id", "volume_id")

CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> <level>{level:<7}</level> "
    "<cyan>{extra[component]:<9}</cyan> {message}<dim>{extra[_ctx]}</dim>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} {level:<7} {extra[component]} "
    "{name}:{line} {message}{extra[_ctx]}"
)


def _patch(record: Any) -> None:
    extra = record["extra"]
    extra.setdefault("component", record["name"].rpartition(".")[2])
    pairs = " ".join(f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra)
    extra["_ctx"] = f" ({pairs})" if pairs else ""


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where log records go.

    Attributes:
        level: Minimum console level. The file always receives DEBUG.
        file: Optional log file, rotated and zipped.
        console: Log to stderr.
        rotation: loguru rotation, e.g. "50 MB" or "1 day".
        retention: Rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def _sinks(config: LogConfig) -> list[dict[str, Any]]:
    sinks: list[dict[str, Any]] = []
    if config.console:
        sinks.append({"sink": sys.stderr, "level": config.level, "format": CONSOLE_FORMAT})
    if config.file:
        path = Path(config.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append({
            "sink": path,
            "level": "DEBUG",
            "format": FILE_FORMAT,
            "rotation": config.rotation,
            "retention": config.retention,
            "compression": "zip",
            # No local variables in tracebacks
            "diagnose": False,
        })
    return sinks


def setup_logging(config: LogConfig) -> list[int]:
    """Route cloudmachine records to the configured sinks. Returns handler ids."""
    logger.remove()
    logger.configure(patcher=_patch)
    logger.enable(_PACKAGE)
    return [logger.add(filter=_PACKAGE, **options) for options in _sinks(config)]


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable(_PACKAGE)
