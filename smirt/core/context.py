from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from smirt.core.auth.service import AuthService
from smirt.core.config.manager import resolve_path
from smirt.core.config.models import AppConfig
from smirt.core.config.paths import ConfigFsPaths
from smirt.core.session.manager import SessionManager
from smirt.core.storage import FileStorage, KeyValueStorage, MemoryStorage
from smirt.core.users.bootstrap import BootstrapSource
from smirt.core.users.registry import UserRegistry


@dataclass
class AppContext:
    """Everything the UI layer needs, built once at start and passed down."""

    cfg: AppConfig
    storage: KeyValueStorage
    registry: UserRegistry
    sessions: SessionManager
    auth: AuthService


def build_storage(cfg: AppConfig, fs: ConfigFsPaths) -> KeyValueStorage:
    if cfg.storage.backend == "memory":
        return MemoryStorage()
    return FileStorage(resolve_path(fs, cfg.storage.dir))


def build_context(
    cfg: AppConfig,
    *,
    fs: Optional[ConfigFsPaths] = None,
    storage: Optional[KeyValueStorage] = None,
    http: Optional[requests.Session] = None,
    clock: Callable[[], float] = time.time,
    logger=None,
) -> AppContext:
    fs = fs or ConfigFsPaths(".")
    store = storage if storage is not None else build_storage(cfg, fs)

    bcfg = cfg.bootstrap
    if bcfg.file:
        bcfg = bcfg.model_copy(update={"file": resolve_path(fs, bcfg.file)})
    bootstrap = BootstrapSource(bcfg, session=http, logger=logger)

    registry = UserRegistry(storage=store, users_key=cfg.storage.users_key, bootstrap=bootstrap, clock=clock, logger=logger)
    sessions = SessionManager(
        storage=store,
        session_key=cfg.storage.session_key,
        duration_seconds=cfg.session.duration_seconds,
        clock=clock,
        logger=logger,
    )
    auth = AuthService(registry=registry, sessions=sessions, logger=logger)
    return AppContext(cfg=cfg, storage=store, registry=registry, sessions=sessions, auth=auth)
