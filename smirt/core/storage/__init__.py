from __future__ import annotations

from smirt.core.storage.base import KeyValueStorage
from smirt.core.storage.file import FileStorage
from smirt.core.storage.memory import MemoryStorage

__all__ = ["KeyValueStorage", "FileStorage", "MemoryStorage"]
