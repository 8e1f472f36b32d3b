from __future__ import annotations

import os
import re
import tempfile
from typing import Optional


_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


class FileStorage:
    """
    One file per key under `root_dir` (`<key>.json`).

    Writes are atomic per key: temp file in the same directory, then os.replace.
    There is no locking; concurrent writers from several processes race and the
    last replace wins.
    """

    def __init__(self, root_dir: str):
        self.root_dir = root_dir

    def _path(self, key: str) -> str:
        if not _KEY_RE.match(str(key or "")) or key in {".", ".."}:
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.root_dir, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        os.makedirs(self.root_dir, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=self.root_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                try:
                    f.flush()
                    os.fsync(f.fileno())
                except OSError:
                    pass
            os.replace(tmp, path)
        finally:
            try:
                if os.path.exists(tmp):
                    os.remove(tmp)
            except OSError:
                pass

    def remove(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
