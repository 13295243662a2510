"""
Configuration from environment variables (optionally loaded from a .env file).

    PROFPLANNER_DATA_DIR         local store directory (default ~/.profplanner)
    PROFPLANNER_CONFLICT_POLICY  "block" or "warn" (default block)
    PROFPLANNER_LOG_LEVEL        DEBUG/INFO/WARNING/ERROR (default WARNING)
    PROFPLANNER_LOG_FILE         optional rotating log file
    PROFPLANNER_REMOTE_URL       REST backend; when set, lessons are stored remotely
    PROFPLANNER_REMOTE_KEY       API key for the REST backend
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from profplanner.conflicts import ConflictPolicy
from profplanner.remote import RemoteStore
from profplanner.storage import LocalStore, default_data_dir

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    policy: ConflictPolicy = ConflictPolicy.BLOCK
    log_level: int = logging.WARNING
    log_file: Optional[str] = None
    remote_url: Optional[str] = None
    remote_key: Optional[str] = None

    def build_store(self) -> Union[LocalStore, RemoteStore]:
        if self.remote_url:
            return RemoteStore(self.remote_url, self.remote_key or "")
        return LocalStore(self.data_dir)


def parse_policy(value: str) -> ConflictPolicy:
    """
    Accept "block" / "warn" (any case). Raises ValueError otherwise.
    """
    raw = value.strip().lower()
    try:
        return ConflictPolicy(raw)
    except ValueError:
        choices = ", ".join(p.value for p in ConflictPolicy)
        raise ValueError(f"Invalid conflict policy {value!r} (expected one of: {choices})") from None


def _parse_level(value: str) -> int:
    raw = value.strip().upper()
    if raw not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level {value!r} (expected one of: {', '.join(_LOG_LEVELS)})")
    return getattr(logging, raw)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` or, when omitted, from os.environ after reading .env.

    Raises ValueError for an invalid policy or log level.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data_dir = env.get("PROFPLANNER_DATA_DIR", "").strip()
    remote_url = env.get("PROFPLANNER_REMOTE_URL", "").strip()

    return Settings(
        data_dir=Path(data_dir).expanduser() if data_dir else default_data_dir(),
        policy=parse_policy(env.get("PROFPLANNER_CONFLICT_POLICY", "block")),
        log_level=_parse_level(env.get("PROFPLANNER_LOG_LEVEL", "WARNING")),
        log_file=env.get("PROFPLANNER_LOG_FILE", "").strip() or None,
        remote_url=remote_url or None,
        remote_key=env.get("PROFPLANNER_REMOTE_KEY", "").strip() or None,
    )
