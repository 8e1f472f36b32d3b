from __future__ import annotations

"""
Structured outcome of a core operation.

Core operations never raise for expected failures (unknown user, wrong
password, missing admin role...). They return a Result carrying either the
value or an AuthError, so UI callers can render `error.user_message` without
exception handling.
"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from smirt.core.errors import AuthError


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[AuthError] = None
    # absorbed failures (e.g. persistence) that did not abort the operation
    warnings: List[AuthError] = field(default_factory=list)

    @classmethod
    def success(cls, value: Optional[T] = None, *, warnings: Optional[List[AuthError]] = None) -> "Result[T]":
        return cls(ok=True, value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: AuthError) -> "Result[T]":
        return cls(ok=False, error=error)

    @property
    def code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str:
        return self.error.user_message if self.error is not None else ""

    def unwrap(self) -> T:
        if not self.ok:
            if self.error is None:
                raise RuntimeError("failed Result carries no error")
            raise self.error
        return self.value  # type: ignore[return-value]
