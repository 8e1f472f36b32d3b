from __future__ import annotations

import os

import pytest

from smirt.core.auth.service import AuthService
from smirt.core.config.paths import ConfigFsPaths
from smirt.core.session.manager import SessionManager
from smirt.core.storage.memory import MemoryStorage
from smirt.core.users.registry import UserRegistry
from tests.helpers.fakes import FakeClock, RecordingLogger


@pytest.fixture
def tmp_root(tmp_path):
    """
    Provides an isolated app root with config/ and data/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    os.makedirs(fs.data_dir, exist_ok=True)
    return fs


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def log():
    return RecordingLogger()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def registry(storage, clock, log):
    reg = UserRegistry(storage=storage, clock=clock, logger=log)
    reg.load()
    return reg


@pytest.fixture
def sessions(storage, clock, log):
    return SessionManager(storage=storage, clock=clock, logger=log)


@pytest.fixture
def auth(registry, sessions, log):
    return AuthService(registry=registry, sessions=sessions, logger=log)
