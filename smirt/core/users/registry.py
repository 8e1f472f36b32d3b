from __future__ import annotations

"""
UserRegistry: the set of user accounts.

Load order: bootstrap source -> persisted snapshot -> default administrator.
After load() the registry always holds at least one user. Persistence is
best-effort; failures are logged and reported as PersistenceFailure, never
raised.
"""

import json
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from smirt.core.errors import (
    AuthError,
    BootstrapUnavailable,
    DuplicateUser,
    InvalidCredential,
    PersistenceFailure,
    UserNotFound,
    ValidationError,
)
from smirt.core.results import Result
from smirt.core.storage.base import KeyValueStorage
from smirt.core.users.bootstrap import BootstrapSource
from smirt.core.users.models import ADMIN_ROLE, NewUser, RedactedUser, User, UserPatch, iso_at


# Known weak credential kept for compatibility with existing deployments.
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "2977"
DEFAULT_ADMIN_DISPLAY_NAME = "Amministratore"


class LoadSource(str, Enum):
    BOOTSTRAP = "bootstrap"
    STORAGE = "storage"
    DEFAULT = "default"


class UserRegistry:
    def __init__(
        self,
        *,
        storage: KeyValueStorage,
        users_key: str = "smirt_users",
        bootstrap: Optional[BootstrapSource] = None,
        clock: Callable[[], float] = time.time,
        logger=None,
    ):
        self.storage = storage
        self.users_key = users_key
        self.bootstrap = bootstrap
        self.clock = clock
        self.logger = logger
        self._users: Dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, username: object) -> bool:
        return username in self._users

    def _now_iso(self) -> str:
        return iso_at(self.clock())

    # ---------- load / save ----------
    def load(self) -> Result[LoadSource]:
        warnings: List[AuthError] = []

        if self.bootstrap is not None and self.bootstrap.enabled:
            try:
                users = self._users_from_bootstrap(self.bootstrap)
            except BootstrapUnavailable as e:
                warnings.append(e)
                if self.logger:
                    self.logger.warning(f"Bootstrap unavailable, using local storage: {e.to_dict()}")
            else:
                self._users = users
                if self.logger:
                    self.logger.info(f"Loaded {len(users)} users from bootstrap source.")
                warnings.extend(self._persist_warnings())
                return Result.success(LoadSource.BOOTSTRAP, warnings=warnings)

        users = self._read_snapshot()
        if users:
            self._users = users
            if self.logger:
                self.logger.info(f"Loaded {len(users)} users from local storage.")
            return Result.success(LoadSource.STORAGE, warnings=warnings)

        self._seed_default_admin()
        warnings.extend(self._persist_warnings())
        return Result.success(LoadSource.DEFAULT, warnings=warnings)

    def _users_from_bootstrap(self, source: BootstrapSource) -> Dict[str, User]:
        payload = source.fetch()
        if not payload.users:
            raise BootstrapUnavailable("Bootstrap source lists no users.")
        now = self._now_iso()
        try:
            return {
                name: User(
                    username=name,
                    password=entry.password,
                    display_name=entry.display_name,
                    role=entry.role,
                    permissions=list(entry.permissions or []),
                    active=True,
                    created_at=now,
                )
                for name, entry in payload.users.items()
            }
        except PydanticValidationError as e:
            raise BootstrapUnavailable("Bootstrap payload has an invalid user.", error=str(e)) from e

    def _read_snapshot(self) -> Dict[str, User]:
        try:
            raw = self.storage.get(self.users_key)
        except Exception as e:  # noqa: BLE001
            if self.logger:
                self.logger.error(f"Reading user snapshot failed: {e}")
            return {}
        if not raw:
            return {}
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            if self.logger:
                self.logger.error(f"User snapshot is corrupt: {e}")
            return {}
        if not isinstance(items, list):
            if self.logger:
                self.logger.error("User snapshot is not a list.")
            return {}
        out: Dict[str, User] = {}
        for item in items:
            try:
                u = User.model_validate(item)
            except PydanticValidationError:
                if self.logger:
                    self.logger.warning("Skipping invalid user record in snapshot.")
                continue
            out[u.username] = u
        return out

    def _seed_default_admin(self) -> None:
        if self.logger:
            self.logger.warning("No users found; seeding default administrator with the built-in credential. Change it.")
        self._users = {
            DEFAULT_ADMIN_USERNAME: User(
                username=DEFAULT_ADMIN_USERNAME,
                password=DEFAULT_ADMIN_PASSWORD,
                display_name=DEFAULT_ADMIN_DISPLAY_NAME,
                role=ADMIN_ROLE,
                active=True,
                created_at=self._now_iso(),
            )
        }

    def save(self) -> Result[None]:
        try:
            blob = json.dumps([u.to_record() for u in self._users.values()], ensure_ascii=False)
            self.storage.set(self.users_key, blob)
        except Exception as e:  # noqa: BLE001
            failure = PersistenceFailure(key=self.users_key, action="write", error=str(e))
            if self.logger:
                self.logger.error(f"Saving users failed: {failure.to_dict()}")
            return Result.failure(failure)
        return Result.success()

    def _persist_warnings(self) -> List[AuthError]:
        saved = self.save()
        return [] if saved.ok or saved.error is None else [saved.error]

    # ---------- queries ----------
    def get_user(self, username: str) -> Optional[User]:
        return self._users.get(username)

    def list_users(self) -> List[RedactedUser]:
        return [u.redacted() for u in self._users.values()]

    # ---------- mutations ----------
    def add_user(self, data: Union[NewUser, Mapping[str, Any]]) -> Result[User]:
        try:
            new = data if isinstance(data, NewUser) else NewUser.model_validate(dict(data))
        except PydanticValidationError as e:
            return Result.failure(ValidationError("Invalid user data.", error=str(e)))
        if new.username in self._users:
            return Result.failure(DuplicateUser(username=new.username))

        user = User(
            username=new.username,
            password=new.password,
            display_name=new.display_name if new.display_name is not None else new.username,
            role=new.role,
            permissions=list(new.permissions),
            active=True,
            created_at=self._now_iso(),
        )
        self._users[user.username] = user
        if self.logger:
            self.logger.info(f"User added: {user.username} (role={user.role})")
        return Result.success(user, warnings=self._persist_warnings())

    def update_user(self, username: str, patch: Union[UserPatch, Mapping[str, Any]]) -> Result[User]:
        user = self._users.get(username)
        if user is None:
            return Result.failure(UserNotFound(username=username))
        try:
            p = patch if isinstance(patch, UserPatch) else UserPatch.model_validate(dict(patch))
        except PydanticValidationError as e:
            return Result.failure(ValidationError("Invalid update.", error=str(e)))

        updated = user.model_copy(update={**p.changes(), "updated_at": self._now_iso()})
        self._users[username] = updated
        return Result.success(updated, warnings=self._persist_warnings())

    def activate_user(self, username: str) -> Result[User]:
        return self.update_user(username, UserPatch(active=True))

    def deactivate_user(self, username: str) -> Result[User]:
        return self.update_user(username, UserPatch(active=False))

    def change_password(self, username: str, old_password: str, new_password: str) -> Result[User]:
        user = self._users.get(username)
        if user is None:
            return Result.failure(UserNotFound(username=username))
        if user.password != old_password:
            return Result.failure(InvalidCredential("Current password is wrong.", username=username))
        return self.update_user(username, {"password": new_password})
