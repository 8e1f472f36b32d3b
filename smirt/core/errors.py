from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from smirt.core.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class AuthError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Returned in Result objects ----
class UserNotFound(AuthError):
    def __init__(self, user_message: str = "User not found.", **ctx: Any):
        super().__init__("user_not_found", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class DuplicateUser(AuthError):
    def __init__(self, user_message: str = "User already exists.", **ctx: Any):
        super().__init__("duplicate_user", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class UserInactive(AuthError):
    def __init__(self, user_message: str = "User is deactivated.", **ctx: Any):
        super().__init__("user_inactive", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class InvalidCredential(AuthError):
    def __init__(self, user_message: str = "Wrong password.", **ctx: Any):
        super().__init__("invalid_credential", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class PermissionDenied(AuthError):
    def __init__(self, user_message: str = "Access denied.", **ctx: Any):
        super().__init__("permission_denied", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ValidationError(AuthError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


# ---- Logged and absorbed ----
class PersistenceFailure(AuthError):
    def __init__(self, user_message: str = "Could not save to local storage.", **ctx: Any):
        super().__init__("persistence_failure", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class BootstrapUnavailable(AuthError):
    def __init__(self, user_message: str = "User bootstrap source unavailable.", **ctx: Any):
        super().__init__("bootstrap_unavailable", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


# ---- Raised at startup ----
class ConfigError(AuthError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
