"""
Logging for revsched.

Console output goes through Rich on stderr so command output on stdout
stays machine-readable; file output is one JSON object per line.
Records may carry contract/run context, added via ContextualLogger.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console

ROOT_LOGGER = "revsched"

# Extra record attributes copied into JSON log lines
CONTEXT_FIELDS = ("contract_id", "run", "item_name", "schedule_index", "confidence")

LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.INFO: "default",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any context fields present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, getattr(record, key)) for key in CONTEXT_FIELDS if hasattr(record, key)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json_dumps(payload)


class RichConsoleHandler(logging.Handler):
    """Colour records by level and prefix them with their contract context."""

    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    @staticmethod
    def context_prefix(record: logging.LogRecord) -> str:
        parts = []
        if getattr(record, "contract_id", None):
            parts.append(str(record.contract_id))
        if getattr(record, "run", None):
            parts.append(f"run {record.run}")
        return f"[cyan]\\[{' '.join(parts)}][/cyan] " if parts else ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            style = LEVEL_STYLES.get(record.levelno, "default")
            self.console.print(
                f"{self.context_prefix(record)}[{style}]{self.format(record)}[/{style}]",
                markup=True,
                highlight=False,
            )
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


def _console_handler(level: int, rich_console: bool) -> logging.Handler:
    handler: logging.Handler
    if rich_console:
        handler = RichConsoleHandler(level=level)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.setLevel(level)
    return handler


def _file_handler(path: Path, json_format: bool) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the ``revsched`` logger tree.

    Calling again replaces the previous handlers.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file; it always records DEBUG and above
        json_format: Write the log file as JSON lines
        rich_console: Use Rich for console output

    Returns:
        The ``revsched`` root logger
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(numeric_level, rich_console))
    if log_file:
        logger.addHandler(_file_handler(Path(log_file), json_format))
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the ``revsched`` namespace (``revsched.<name>``)."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class ContextualLogger(logging.LoggerAdapter):
    """Adds contract and run context to every record it logs.

    Context values that are None are left off the record.
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, {})
        self.context = {k: v for k, v in context.items() if v is not None}

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.context, **kwargs.get("extra", {})}
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextualLogger":
        """A new adapter with ``context`` layered over the current one."""
        return ContextualLogger(self.logger, **{**self.context, **context})


def get_contextual_logger(
    name: str | None = None,
    contract_id: str | None = None,
    run: int | None = None,
    **context: Any,
) -> ContextualLogger:
    return ContextualLogger(get_logger(name), contract_id=contract_id, run=run, **context)
