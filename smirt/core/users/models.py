from __future__ import annotations

import time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"


def iso_at(ts: float) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(ts))


def _clean_role(v: str) -> str:
    role = str(v or "").strip()
    if not role:
        raise ValueError("role must not be empty")
    return role


class User(BaseModel):
    """
    Stored user record. Persisted with the legacy camelCase keys.

    `password` is kept and compared in plaintext (known deficiency, carried over).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    username: str = Field(min_length=1, max_length=120)
    password: str
    display_name: str = Field(default="", alias="displayName")
    role: str = DEFAULT_ROLE
    permissions: List[str] = Field(default_factory=list)
    active: bool = True
    created_at: str = Field(alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    def to_record(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def redacted(self) -> "RedactedUser":
        return RedactedUser.model_validate(self.model_dump(exclude={"password"}))


class RedactedUser(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    username: str
    display_name: str = Field(default="", alias="displayName")
    role: str
    permissions: List[str] = Field(default_factory=list)
    active: bool
    created_at: str = Field(alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class NewUser(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    username: str = Field(min_length=1, max_length=120)
    password: str = Field(min_length=1)
    display_name: Optional[str] = Field(default=None, alias="displayName")
    role: str = DEFAULT_ROLE
    permissions: List[str] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        name = str(v).strip()
        if not name:
            raise ValueError("username must not be empty")
        return name

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        return _clean_role(v)


class UserPatch(BaseModel):
    """
    Partial update. Only fields explicitly set are merged; `username` is not
    updatable, so unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    password: Optional[str] = Field(default=None, min_length=1)
    display_name: Optional[str] = Field(default=None, alias="displayName")
    role: Optional[str] = None
    permissions: Optional[List[str]] = None
    active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def check_role(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_role(v)

    def changes(self) -> Dict[str, object]:
        # explicit None for a non-nullable field is not a change
        return {k: getattr(self, k) for k in self.model_fields_set if getattr(self, k) is not None}


class BootstrapUser(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    password: str
    display_name: str = Field(default="", alias="displayName")
    role: str = DEFAULT_ROLE
    permissions: Optional[List[str]] = None


class BootstrapPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    users: Dict[str, BootstrapUser]
