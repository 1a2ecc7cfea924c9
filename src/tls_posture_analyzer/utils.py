from __future__ import annotations

import hashlib
import logging
import math
from datetime import datetime, timezone


class _ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str | None, use_color: bool) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color and record.levelno in self.COLORS:
            color = self.COLORS[record.levelno]
            original_levelname = record.levelname
            record.levelname = f"{color}{original_levelname}{self.RESET}"
            try:
                return super().format(record)
            finally:
                record.levelname = original_levelname
        return super().format(record)


def configure_logging(level: str = "warning") -> None:
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger()
    logger.setLevel(numeric_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    # stderr keeps stdout clean for the JSON report
    handler = logging.StreamHandler()
    formatter = _ColorFormatter(
        fmt="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        use_color=handler.stream.isatty(),
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def dt_to_local_iso(dt: datetime) -> str:
    """Render as ISO-like local wall time, e.g. ``2026-10-17 14:03:00``."""
    return as_utc(dt).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def local_timestamp(now: datetime | None = None) -> str:
    return dt_to_local_iso(now or utc_now())


def days_until(dt: datetime, now: datetime | None = None) -> int:
    # floor, so anything past not_after is negative
    remaining = as_utc(dt) - as_utc(now or utc_now())
    return math.floor(remaining.total_seconds() / 86400)
