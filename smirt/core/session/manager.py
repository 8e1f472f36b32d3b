from __future__ import annotations

import json
import time
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from smirt.core.errors import AuthError, PersistenceFailure
from smirt.core.results import Result
from smirt.core.session.models import Session, SessionState
from smirt.core.storage.base import KeyValueStorage
from smirt.core.users.models import User


DEFAULT_SESSION_SECONDS = 24 * 60 * 60


class SessionManager:
    """
    Owns the one current session.

    The persisted record is authoritative: validate() always re-reads it, so a
    logout done through the shared store by another process is honoured here.
    Every successful validate() slides the expiry forward by the full duration.

    Storage failures are absorbed. The failures of the most recent issue() or
    validate() are available from `last_warnings`; revoke() returns its own.
    """

    def __init__(
        self,
        *,
        storage: KeyValueStorage,
        session_key: str = "smirt_session",
        duration_seconds: float = DEFAULT_SESSION_SECONDS,
        clock: Callable[[], float] = time.time,
        logger=None,
    ):
        self.storage = storage
        self.session_key = session_key
        self.duration_seconds = float(duration_seconds)
        self.clock = clock
        self.logger = logger
        self._cached: Optional[Session] = None
        # (username, login_time) of a session revoked while its record could not be removed
        self._revoked: Optional[Tuple[str, float]] = None
        self._last_warnings: List[AuthError] = []

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self._cached is not None else SessionState.NO_SESSION

    @property
    def last_warnings(self) -> List[AuthError]:
        return list(self._last_warnings)

    def _failure(self, action: str, e: Exception) -> PersistenceFailure:
        failure = PersistenceFailure(key=self.session_key, action=action, error=str(e))
        if self.logger:
            self.logger.error(f"Session storage failed: {failure.to_dict()}")
        return failure

    def _write(self, session: Session) -> Optional[PersistenceFailure]:
        try:
            self.storage.set(self.session_key, json.dumps(session.to_record(), ensure_ascii=False))
        except Exception as e:  # noqa: BLE001
            return self._failure("write", e)
        return None

    def _read(self) -> Optional[Session]:
        raw = self.storage.get(self.session_key)
        if not raw:
            return None
        return Session.model_validate(json.loads(raw))

    def _is_revoked(self, session: Session) -> bool:
        return self._revoked is not None and self._revoked == (session.username, session.login_time)

    def issue(self, user: User) -> Session:
        now = self.clock()
        session = Session(
            username=user.username,
            display_name=user.display_name,
            role=user.role,
            login_time=now,
            expires_at=now + self.duration_seconds,
        )
        self._cached = session
        self._revoked = None
        failure = self._write(session)
        self._last_warnings = [failure] if failure is not None else []
        if self.logger:
            self.logger.info(f"Session issued for {user.username} (role={user.role})")
        return session

    def validate(self) -> bool:
        self._last_warnings = []
        try:
            session = self._read()
        except (ValueError, PydanticValidationError) as e:
            # json.JSONDecodeError is a ValueError
            if self.logger:
                self.logger.error(f"Session record unreadable, clearing: {e}")
            self._last_warnings = list(self.revoke().warnings)
            return False
        except Exception as e:  # noqa: BLE001
            self._last_warnings = [self._failure("read", e)]
            self._cached = None
            return False

        if session is None or self._is_revoked(session):
            self._cached = None
            return False

        now = self.clock()
        if not session.is_valid_at(now):
            if self.logger:
                self.logger.info(f"Session for {session.username} expired.")
            self._last_warnings = list(self.revoke().warnings)
            return False

        extended = session.model_copy(update={"expires_at": now + self.duration_seconds})
        failure = self._write(extended)
        if failure is not None:
            self._last_warnings = [failure]
        self._cached = extended
        return True

    def current(self) -> Optional[Session]:
        if self.validate():
            return self._cached
        return None

    def revoke(self) -> Result[None]:
        """
        Drop the session. Always ends in NO_SESSION for this manager.

        If the record cannot be removed it is overwritten with an expired copy
        and remembered as revoked, so validate() never revives it.
        """
        target = self._cached
        self._cached = None
        try:
            self.storage.remove(self.session_key)
        except Exception as e:  # noqa: BLE001
            warnings: List[AuthError] = [self._failure("remove", e)]
            if target is None:
                try:
                    target = self._read()
                except Exception:  # noqa: BLE001
                    target = None
            if target is not None:
                self._revoked = (target.username, target.login_time)
                tombstone = target.model_copy(update={"expires_at": 0.0})
                failure = self._write(tombstone)
                if failure is not None:
                    warnings.append(failure)
            return Result.success(warnings=warnings)
        return Result.success()

    def cleanup(self) -> None:
        """Maintenance pass: drop the session if it is no longer valid."""
        if not self.validate():
            self.revoke()
