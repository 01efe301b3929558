"""Process-wide logging for the calendar generator.

configure_logging() is the single entry point. It sets the root level and
format, optionally adds a rotating file, and installs a filter that masks
Bilibili session cookies (SESSDATA, bili_jct, ...) if one ever reaches a
log message. LOG_LEVEL and LOG_FILE are read from the environment.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_DEFAULT_LEVEL = "INFO"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_BACKUP_COUNT = 3
_QUIET_LOGGERS = ("httpx", "httpcore")

_COOKIE_RE = re.compile(r"\b(SESSDATA|bili_jct|DedeUserID__ckMd5|buvid3)=([^;\s]+)", re.IGNORECASE)
REDACTED = "***"


def redact_cookies(text: str) -> str:
    return _COOKIE_RE.sub(lambda match: f"{match.group(1)}={REDACTED}", text)


class CookieRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_cookies(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _level_from_env() -> int:
    raw = os.environ.get("LOG_LEVEL", _DEFAULT_LEVEL).strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def _log_file_from_env() -> str | None:
    return os.environ.get("LOG_FILE", "").strip() or None


def _build_handlers(level: int, log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(log_file, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
            )
        except OSError as exc:
            sys.stderr.write(f"Could not open log file {log_file}: {exc}; logging to stderr only\n")
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    redaction = CookieRedactionFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(redaction)
    return handlers


def configure_logging(*, level: int | None = None, log_file: str | None = None) -> None:
    """Configure the root logger; safe to call more than once.

    Args:
        level: Log level. Defaults to LOG_LEVEL from the environment, else INFO.
        log_file: Rotating log file path. Defaults to LOG_FILE from the environment.
    """
    if level is None:
        level = _level_from_env()
    if log_file is None:
        log_file = _log_file_from_env()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in _build_handlers(level, log_file):
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
