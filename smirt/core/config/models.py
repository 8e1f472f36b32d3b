from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    backend: Literal["file", "memory"] = "file"
    # relative paths resolve against the app root
    dir: str = "data"
    users_key: str = Field(default="smirt_users", min_length=1, max_length=128)
    session_key: str = Field(default="smirt_session", min_length=1, max_length=128)


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    duration_seconds: int = Field(default=24 * 60 * 60, ge=1)


class BootstrapConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    # empty url and empty file disable the bootstrap source
    url: str = ""
    base_url: str = ""
    file: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)
    max_attempts: int = Field(default=1, ge=1, le=5)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: str = "INFO"
    dir: str = "logs"
    console: bool = True


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
