from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from smirt.core.config.io import atomic_write_json, read_json_file
from smirt.core.config.models import AppConfig
from smirt.core.config.paths import ConfigFsPaths
from smirt.core.errors import ConfigError


ENV_ROOT = "SMIRT_ROOT"
ENV_BOOTSTRAP_URL = "SMIRT_BOOTSTRAP_URL"


def default_paths(env: Optional[Mapping[str, str]] = None) -> ConfigFsPaths:
    env = os.environ if env is None else env
    return ConfigFsPaths(root=str(env.get(ENV_ROOT) or "."))


def resolve_path(fs: ConfigFsPaths, path: str) -> str:
    if not path:
        return path
    if os.path.isabs(path):
        return path
    return os.path.join(fs.root, path)


class ConfigManager:
    """
    Loads config/auth.json into an AppConfig.

    A missing file means defaults. A corrupt or schema-invalid file fails closed
    with ConfigError: auth settings are never guessed.
    """

    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, env: Optional[Mapping[str, str]] = None):
        self.fs = fs or default_paths(env)
        self.logger = logger
        self.env = os.environ if env is None else env
        self._cfg: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        rr = read_json_file(self.fs.auth)
        raw: dict[str, Any] = {}
        if rr.ok:
            raw = rr.data
        elif rr.error != "missing":
            raise ConfigError("Config file is unreadable.", path=self.fs.auth, error=rr.error)
        try:
            cfg = AppConfig.model_validate(raw)
        except PydanticValidationError as e:
            raise ConfigError("Config file is invalid.", path=self.fs.auth, error=str(e)) from e

        url = str(self.env.get(ENV_BOOTSTRAP_URL) or "").strip()
        if url:
            cfg = cfg.model_copy(update={"bootstrap": cfg.bootstrap.model_copy(update={"url": url})})
        if self.logger and not rr.ok:
            self.logger.info("Config file missing; using defaults.")
        self._cfg = cfg
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def write_defaults(self, *, overwrite: bool = False) -> str:
        path = self.fs.auth
        if os.path.exists(path) and not overwrite:
            return path
        atomic_write_json(path, AppConfig().model_dump())
        return path
