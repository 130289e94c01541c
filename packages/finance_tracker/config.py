"""Runtime settings for ``finance_tracker``.

Settings come from keyword overrides first, then the environment (a local
``.env`` is loaded without overriding variables that are already set), then
defaults:

- ``FINANCE_TRACKER_DATABASE_URL`` (falls back to ``DATABASE_URL``)
- ``FINANCE_TRACKER_NAMESPACE``: the record "box" name, default ``trades``
- ``FINANCE_TRACKER_LOG_LEVEL``
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .store import DEFAULT_NAMESPACE

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///finance_tracker.db"

_NAMESPACE_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


class TrackerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    database_url: str = DEFAULT_DATABASE_URL
    namespace: str = DEFAULT_NAMESPACE
    log_level: str | None = None

    @field_validator("database_url")
    @classmethod
    def _url_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("database_url must be non-empty")
        return v

    @field_validator("namespace")
    @classmethod
    def _namespace_shape(cls, v: str) -> str:
        if not _NAMESPACE_RE.fullmatch(v):
            raise ValueError("namespace must be 1-64 characters of letters, digits, '_' or '-'")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str | None) -> str | None:
        if v is None or not v:
            return None
        upper = v.upper()
        if upper not in _LOG_LEVELS and not upper.isdigit():
            raise ValueError(f"unknown log level {v!r}")
        return upper


def _from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    url = os.getenv("FINANCE_TRACKER_DATABASE_URL") or os.getenv("DATABASE_URL")
    if url:
        values["database_url"] = url
    namespace = os.getenv("FINANCE_TRACKER_NAMESPACE")
    if namespace:
        values["namespace"] = namespace
    level = os.getenv("FINANCE_TRACKER_LOG_LEVEL")
    if level:
        values["log_level"] = level
    return values


def load_settings(*, dotenv_path: Path | None = None, **overrides: Any) -> TrackerSettings:
    """Build :class:`TrackerSettings`; ``None`` overrides are ignored.

    Raises the tracker's ``ValidationError`` listing every invalid field.
    """

    # override=False keeps variables already present in the process environment
    load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True), override=False)

    values = _from_env()
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return TrackerSettings(**values)
    except PydanticValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ValidationError("\n".join(problems)) from exc


__all__ = ["DEFAULT_DATABASE_URL", "TrackerSettings", "load_settings"]
