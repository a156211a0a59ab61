# app/core/logger.py
from __future__ import annotations

"""
StreamGate — Logging (Loguru)
-----------------------------
- Pretty console logs by default; JSON lines via `LOG_JSON=1`
- Every record carries `request_id` (bound by RequestIDMiddleware)
- The root stdlib logger is routed into Loguru, so modules keep using
  `logging.getLogger(__name__)` and still land in the same sinks
- Optional rotating file sink

Env
---
LOG_LEVEL=INFO|DEBUG|WARNING|ERROR (default: INFO)
LOG_JSON=1
LOG_TO_FILE=1 (default: 0)
LOG_DIR=logs
LOG_FILE=streamgate.log
LOG_ROTATION=10 MB
APP_DEBUG=1 (backtrace/diagnose on the console sink)

`configure_logging()` is idempotent and runs once on import.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

_TRUTHY = {"1", "true", "yes"}
_configured = False


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


# ─────────────────────────────────────────────────────────────
# 🧾 Formatters
# ─────────────────────────────────────────────────────────────
def _fmt_pretty(record) -> str:
    record["extra"].setdefault("request_id", "-")
    name = record["name"].replace("<", "[").replace(">", "]")
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        f"<cyan>{name}</cyan>:<cyan>{{line}}</cyan> - <level>{{message}}</level> "
        "| rid={extra[request_id]}\n{exception}"
    )


def _json_line(record) -> str:
    payload: Dict[str, Any] = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "line": record["line"],
        "message": record["message"],
        "request_id": record["extra"].get("request_id", "-"),
    }
    for k, v in record["extra"].items():
        payload.setdefault(k, v if isinstance(v, (str, int, float, bool, type(None))) else str(v))
    if record["exception"] is not None:
        payload["exception"] = repr(record["exception"].value)
    return json.dumps(payload, ensure_ascii=False)


def _json_sink(message) -> None:
    sys.stdout.write(_json_line(message.record) + "\n")


# ─────────────────────────────────────────────────────────────
# 🔁 stdlib logging → Loguru
# ─────────────────────────────────────────────────────────────
class InterceptHandler(logging.Handler):
    """Forward stdlib records to Loguru, preserving the caller location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging() -> None:
    global _configured
    if _configured:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    debug = _env_flag("APP_DEBUG")

    logger.remove()
    logger.configure(extra={"request_id": "-"})
    if _env_flag("LOG_JSON"):
        logger.add(_json_sink, level=level, enqueue=False)
    else:
        logger.add(sys.stdout, level=level, format=_fmt_pretty, backtrace=debug, diagnose=debug)

    if _env_flag("LOG_TO_FILE"):
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / os.getenv("LOG_FILE", "streamgate.log")),
            rotation=os.getenv("LOG_ROTATION", "10 MB"),
            level=level,
            serialize=True,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "starlette", "sqlalchemy.engine"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    _configured = True


configure_logging()

__all__ = ["configure_logging", "InterceptHandler", "logger"]
