"""Configuration helpers for backend runtime."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    host: str
    port: int
    poll_interval: float
    log_level: str


def load_settings() -> BackendSettings:
    port_raw = os.getenv("POKERROOM_PORT", "8000")
    poll_raw = os.getenv("POKERROOM_POLL_INTERVAL", "5.0")
    return BackendSettings(
        database_url=os.getenv("POKERROOM_DATABASE_URL") or None,
        host=os.getenv("POKERROOM_HOST", "127.0.0.1"),
        port=int(port_raw),
        poll_interval=float(poll_raw),
        log_level=os.getenv("POKERROOM_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
