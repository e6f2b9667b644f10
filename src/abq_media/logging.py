"""Structured logging configuration.

Standard library logging with a JSON formatter. Console output goes to stderr
so it never interleaves with interactive prompts; each run can additionally
keep a JSON-lines log inside its run directory.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

RUN_LOG_NAME = "run.log"

_RESERVED_LOG_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render a log record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Configure root logging with structured JSON output on stderr."""

    root = logging.getLogger()

    # Re-configuring must not duplicate handlers.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level.upper())

    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in ("openai", "httpx", "httpcore", "urllib3"):
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))


class RunLogBinding:
    """Keep one JSON-lines file handler attached to the active run directory.

    The run directory can change while a run is in flight (project selection
    relocates it), so `bind` swaps the handler when the directory moves.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self._handler: logging.FileHandler | None = None
        self._run_dir: Path | None = None

    @property
    def run_dir(self) -> Path | None:
        return self._run_dir

    def bind(self, run_dir: Path) -> None:
        if self._run_dir == run_dir and self._handler is not None:
            return

        self.close()
        run_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(run_dir / RUN_LOG_NAME, encoding="utf-8")
        handler.setFormatter(JsonFormatter())
        handler.setLevel(self._level)

        root = logging.getLogger()
        root.addHandler(handler)
        # Console handlers keep their own level; only the root gate is lowered.
        if root.level > self._level:
            root.setLevel(self._level)

        self._handler = handler
        self._run_dir = run_dir

    def close(self) -> None:
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        self._run_dir = None
