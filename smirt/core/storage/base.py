from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    String-keyed local store holding string values.

    Implementations may raise on I/O failure; callers decide whether that is
    absorbed (registry/session persistence) or propagated.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...
