from __future__ import annotations

import json

import pytest

from smirt.cli import main
from smirt.core.config.models import AppConfig
from smirt.core.config.paths import ConfigFsPaths
from smirt.core.context import build_context
from smirt.core.storage.file import FileStorage
from smirt.core.storage.memory import MemoryStorage
from smirt.core.users.registry import DEFAULT_ADMIN_PASSWORD
from tests.helpers.fakes import FakeHttp, FakeResponse


@pytest.fixture
def root(tmp_root):
    with open(tmp_root.auth, "w", encoding="utf-8") as f:
        json.dump({"logging": {"console": False}}, f)
    return tmp_root


def _run(root, *argv, secrets=None):
    answers = list(secrets or [])
    return main(["--root", root.root, *argv], read_secret=lambda _p: answers.pop(0))


def test_login_whoami_logout(root, capsys):
    assert _run(root, "whoami") == 1
    assert _run(root, "login", "admin", "--password", DEFAULT_ADMIN_PASSWORD) == 0
    assert "Logged in as Amministratore (admin)" in capsys.readouterr().out
    assert _run(root, "whoami") == 0
    assert capsys.readouterr().out.startswith("admin | Amministratore | admin")
    assert _run(root, "logout") == 0
    assert _run(root, "whoami") == 1


def test_login_prompts_for_password(root, capsys):
    assert _run(root, "login", "admin", secrets=["wrong"]) == 1
    assert "[invalid_credential]" in capsys.readouterr().out
    assert _run(root, "login", "admin", secrets=[DEFAULT_ADMIN_PASSWORD]) == 0


def test_user_management_requires_admin(root, capsys):
    assert _run(root, "users", "list") == 1
    assert "[permission_denied]" in capsys.readouterr().out

    _run(root, "login", "admin", "--password", DEFAULT_ADMIN_PASSWORD)
    assert _run(root, "users", "add", "mario", "--password", "pw", "--role", "operator", "--display-name", "Mario") == 0
    assert _run(root, "users", "add", "mario", "--password", "pw") == 1
    assert _run(root, "users", "deactivate", "mario") == 0
    capsys.readouterr()
    assert _run(root, "users", "list") == 0
    out = capsys.readouterr().out
    assert "mario | Mario | operator | false" in out
    assert "pw" not in out.replace("operator", "")
    assert _run(root, "users", "activate", "mario") == 0

    stored = json.loads(FileStorage(root.data_dir).get("smirt_users"))
    assert {u["username"] for u in stored} == {"admin", "mario"}


def test_passwd(root):
    assert _run(root, "passwd", "admin", secrets=["bad", "new-pass"]) == 1
    assert _run(root, "passwd", "admin", "--old-password", DEFAULT_ADMIN_PASSWORD, "--new-password", "new-pass") == 0
    assert _run(root, "login", "admin", "--password", "new-pass") == 0


def test_cleanup(root, capsys):
    assert _run(root, "cleanup") == 0
    assert "NO_SESSION" in capsys.readouterr().out


def test_invalid_config_exits_2(tmp_root, capsys):
    with open(tmp_root.auth, "w", encoding="utf-8") as f:
        f.write("{")
    assert main(["--root", tmp_root.root, "whoami"]) == 2
    assert "[config_error]" in capsys.readouterr().out


def test_build_context_wires_bootstrap_and_storage(tmp_path):
    cfg = AppConfig.model_validate({"bootstrap": {"url": "http://h/users.json"}, "session": {"duration_seconds": 60}})
    http = FakeHttp(FakeResponse(200, {"users": {"eva": {"password": "e", "displayName": "Eva", "role": "admin"}}}))
    ctx = build_context(cfg, fs=ConfigFsPaths(str(tmp_path)), http=http)
    assert isinstance(ctx.storage, FileStorage)
    assert ctx.registry.load().value.value == "bootstrap"
    assert ctx.auth.authenticate("eva", "e").ok
    assert ctx.sessions.duration_seconds == 60
    assert (tmp_path / "data" / "smirt_users.json").exists()


def test_build_context_memory_backend(tmp_path):
    cfg = AppConfig.model_validate({"storage": {"backend": "memory"}})
    ctx = build_context(cfg, fs=ConfigFsPaths(str(tmp_path)))
    assert isinstance(ctx.storage, MemoryStorage)
    ctx.registry.load()
    assert "admin" in ctx.registry
