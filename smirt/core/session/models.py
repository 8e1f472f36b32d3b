from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    NO_SESSION = "NO_SESSION"
    ACTIVE = "ACTIVE"


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    username: str
    display_name: str = Field(default="", alias="displayName")
    role: str
    # epoch seconds
    login_time: float = Field(alias="loginTime")
    expires_at: float = Field(alias="expiresAt")

    def is_valid_at(self, now: float) -> bool:
        return self.expires_at > now

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)
