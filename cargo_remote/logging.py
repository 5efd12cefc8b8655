"""Logging configuration for cargo-remote.

Structured logging via loguru. Logging is disabled by default (library
behaviour) and enabled by the CLI, or by callers that embed the
orchestrator, through ``configure_logging``.

Example:
    from cargo_remote.logging import LogConfig, configure_logging

    configure_logging(LogConfig(level="DEBUG", file="remote.log"))
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Literal

from loguru import logger

from cargo_remote.constants import LOG_LEVEL_ENV

logger.disable("cargo_remote")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum console level.
        file: Optional log file; always captures DEBUG.
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g. "10 MB").
        retention: Number of rotated files to keep.
    """

    level: LogLevel = "WARNING"
    file: str | None = None
    console: bool = True
    rotation: str = "10 MB"
    retention: int = 5

    @classmethod
    def from_env(cls, *, verbose: bool = False) -> LogConfig:
        if verbose:
            return cls(level="DEBUG")
        level = os.environ.get(LOG_LEVEL_ENV, "").upper()
        if level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            return cls(level=level)  # type: ignore[arg-type]
        return cls()


def configure_logging(config: LogConfig) -> list[int]:
    """Enable cargo_remote logging and return the added handler IDs."""
    logger.remove()
    logger.enable("cargo_remote")
    logger.configure(extra={"component": "cli"})
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level=config.level,
                format=CONSOLE_FORMAT,
                colorize=True,
                filter="cargo_remote",
            )
        )

    if config.file:
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                format=FILE_FORMAT,
                rotation=config.rotation,
                retention=config.retention,
                diagnose=False,  # api keys live in locals
                filter="cargo_remote",
            )
        )

    return handler_ids
