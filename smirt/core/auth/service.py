from __future__ import annotations

"""
AuthService: the query surface UI code talks to.

Credential checks go against UserRegistry, sessions come from SessionManager.
Every expected failure is returned as a Result; nothing here raises to the UI.
"""

from typing import Any, List, Mapping, Optional, Union

from smirt.core.errors import InvalidCredential, PermissionDenied, UserInactive, UserNotFound
from smirt.core.results import Result
from smirt.core.session.manager import SessionManager
from smirt.core.session.models import Session
from smirt.core.users.models import ADMIN_ROLE, NewUser, RedactedUser, User, UserPatch
from smirt.core.users.registry import UserRegistry


class AuthService:
    def __init__(self, *, registry: UserRegistry, sessions: SessionManager, logger=None):
        self.registry = registry
        self.sessions = sessions
        self.logger = logger

    def authenticate(self, username: str, password: str) -> Result[Session]:
        user = self.registry.get_user(username)
        if user is None:
            return Result.failure(UserNotFound(username=username))
        if not user.active:
            return Result.failure(UserInactive(username=username))
        # plaintext equality: legacy behaviour, flagged in the users package docs
        if user.password != password:
            err = InvalidCredential(username=username)
            if self.logger:
                self.logger.warning(f"Failed login: {err.to_dict()}")
            return Result.failure(err)
        session = self.sessions.issue(user)
        return Result.success(session, warnings=self.sessions.last_warnings)

    def get_current_user(self) -> Optional[Session]:
        return self.sessions.current()

    def has_role(self, role: str) -> bool:
        current = self.sessions.current()
        return current is not None and current.role == role

    def is_admin(self) -> bool:
        return self.has_role(ADMIN_ROLE)

    def logout(self) -> Result[None]:
        res = self.sessions.revoke()
        if self.logger:
            self.logger.info("Logged out.")
        return res

    def change_password(self, username: str, old_password: str, new_password: str) -> Result[User]:
        return self.registry.change_password(username, old_password, new_password)

    # ---- admin-gated ----
    def _require_admin(self, action: str) -> Optional[PermissionDenied]:
        current = self.sessions.current()
        if current is None or current.role != ADMIN_ROLE:
            if self.logger:
                who = current.username if current is not None else "<no session>"
                self.logger.warning(f"Denied {action} for {who}.")
            return PermissionDenied(action=action)
        return None

    def list_users_for_admin(self) -> Result[List[RedactedUser]]:
        denied = self._require_admin("list_users")
        if denied is not None:
            return Result.failure(denied)
        return Result.success(self.registry.list_users())

    def add_user(self, data: Union[NewUser, Mapping[str, Any]]) -> Result[RedactedUser]:
        denied = self._require_admin("add_user")
        if denied is not None:
            return Result.failure(denied)
        return _redacted(self.registry.add_user(data))

    def update_user(self, username: str, patch: Union[UserPatch, Mapping[str, Any]]) -> Result[RedactedUser]:
        denied = self._require_admin("update_user")
        if denied is not None:
            return Result.failure(denied)
        return _redacted(self.registry.update_user(username, patch))

    def activate_user(self, username: str) -> Result[RedactedUser]:
        return self.update_user(username, UserPatch(active=True))

    def deactivate_user(self, username: str) -> Result[RedactedUser]:
        return self.update_user(username, UserPatch(active=False))


def _redacted(res: Result[User]) -> Result[RedactedUser]:
    if not res.ok or res.value is None:
        return Result(ok=res.ok, error=res.error, warnings=list(res.warnings))
    return Result.success(res.value.redacted(), warnings=res.warnings)
