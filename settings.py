"""Runtime settings for the bookmark service, read from environment variables.

  BOOKMARKER_HOST, BOOKMARKER_PORT
  BOOKMARKER_FLUSH_INTERVAL (seconds between flush attempts)
  BOOKMARKER_STORAGE_PATH (JSON snapshot file, `~` is expanded)
  BOOKMARKER_FLUSH_ON_SHUTDOWN, BOOKMARKER_REQUEUE_FAILED_FLUSH
  BOOKMARKER_LOG_LEVEL
"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_PORT = 35248
DEFAULT_STORAGE_PATH = "~/.playbackBookmarks.json"

_ENV_FIELDS = {
    "BOOKMARKER_HOST": "host",
    "BOOKMARKER_PORT": "port",
    "BOOKMARKER_FLUSH_INTERVAL": "flush_interval",
    "BOOKMARKER_STORAGE_PATH": "storage_path",
    "BOOKMARKER_FLUSH_ON_SHUTDOWN": "flush_on_shutdown",
    "BOOKMARKER_REQUEUE_FAILED_FLUSH": "requeue_failed_flush",
    "BOOKMARKER_LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    flush_interval: float = Field(3600.0, gt=0)
    storage_path: str = Field(DEFAULT_STORAGE_PATH, validate_default=True)
    flush_on_shutdown: bool = True
    requeue_failed_flush: bool = False
    log_level: str = Field("INFO", validate_default=True)

    @field_validator("storage_path")
    @classmethod
    def _expand_home(cls, v: str) -> str:
        return os.path.expanduser(v)

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    values = {field: env[name] for name, field in _ENV_FIELDS.items() if env.get(name)}
    return Settings(**values)
