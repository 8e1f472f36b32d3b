from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def data_dir(self) -> str:
        return os.path.join(self.root, "data")

    # Files
    @property
    def auth(self) -> str:
        return os.path.join(self.config_dir, "auth.json")
