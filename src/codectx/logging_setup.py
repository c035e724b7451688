# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Logging configuration for the context engine process.

Records go to a daily JSON-lines file under the data root's logs/ directory
and, optionally, to stderr in a readable form. stdout is left alone because
the MCP stdio transport owns it.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .log_config import get_logs_dir

LOG_FILE_PREFIX = "codectx_"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every file event at DEBUG; raised to WARNING unless we run at DEBUG
NOISY_LOGGERS = ("watchdog", "asyncio")


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object per line.

    Callers attach additional keys with extra={"extra_fields": {...}}, e.g.
    cache counters after a context collection. Records emitted off the main
    thread (watchdog callbacks) carry the thread name.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName != "MainThread":
            payload["thread"] = record.threadName
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)

        return json.dumps(payload, default=str)


def _log_file_path(log_dir: Path) -> Path:
    day = datetime.now(timezone.utc).strftime("%Y%m%d")
    return log_dir / f"{LOG_FILE_PREFIX}{day}.log"


def _quiet_noisy_loggers(log_level: int) -> None:
    level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: int = logging.INFO,
    console_output: bool = True,
) -> Path:
    """Configure the root logger for the server process.

    Calling this again replaces every handler on the root logger, so
    repeated setup never duplicates output.

    Args:
        log_dir: Directory for the JSON log files (default: ~/.codectx/logs/)
        log_level: Level for the root logger and both handlers
        console_output: Also write human-readable records to stderr

    Returns:
        Path of today's log file.
    """
    log_dir = log_dir or get_logs_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)

    log_file = _log_file_path(log_dir)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(
            logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)
        )
        root_logger.addHandler(console_handler)

    _quiet_noisy_loggers(log_level)
    level_name = logging.getLevelName(log_level)
    logging.getLogger(__name__).info(f"Logging to {log_file} at level {level_name}")
    return log_file
