from __future__ import annotations

import json

from smirt.core.config.models import BootstrapConfig
from smirt.core.storage.memory import MemoryStorage
from smirt.core.users.bootstrap import BootstrapSource
from smirt.core.users.models import UserPatch
from smirt.core.users.registry import DEFAULT_ADMIN_PASSWORD, LoadSource, UserRegistry
from tests.helpers.fakes import FailingStorage, FakeClock, FakeHttp, FakeResponse, RecordingLogger


def _unreachable_bootstrap() -> BootstrapSource:
    return BootstrapSource(BootstrapConfig(url="http://smirt.invalid/users.json"), session=FakeHttp())


def test_empty_everything_seeds_single_admin():
    storage = MemoryStorage()
    reg = UserRegistry(storage=storage, bootstrap=_unreachable_bootstrap(), clock=FakeClock())
    res = reg.load()
    assert res.ok
    assert res.value == LoadSource.DEFAULT
    assert [w.code for w in res.warnings] == ["bootstrap_unavailable"]
    assert len(reg) == 1
    admin = reg.get_user("admin")
    assert admin is not None
    assert admin.role == "admin"
    assert admin.active is True
    assert admin.password == DEFAULT_ADMIN_PASSWORD
    # seeded admin is persisted
    stored = json.loads(storage.get("smirt_users"))
    assert [u["username"] for u in stored] == ["admin"]


def test_corrupt_or_empty_snapshot_reseeds_admin():
    for raw in ("{not json", "[]", '{"users": 1}', '[{"username": "x"}]'):
        reg = UserRegistry(storage=MemoryStorage({"smirt_users": raw}), clock=FakeClock())
        assert reg.load().value == LoadSource.DEFAULT
        assert len(reg) == 1
        assert "admin" in reg


def test_unreadable_storage_still_seeds_admin():
    reg = UserRegistry(storage=FailingStorage(fail_get=True), clock=FakeClock())
    res = reg.load()
    assert res.ok
    assert res.value == LoadSource.DEFAULT
    assert "admin" in reg
    assert [w.code for w in res.warnings] == ["persistence_failure"]


def test_save_then_load_round_trips_records():
    storage = MemoryStorage()
    clock = FakeClock()
    reg = UserRegistry(storage=storage, clock=clock)
    reg.load()
    reg.add_user({"username": "mario", "password": "pw1", "display_name": "Mario Rossi", "permissions": ["reports.submit"]})
    clock.advance(60)
    reg.update_user("mario", {"role": "operator"})
    reg.deactivate_user("admin")
    assert reg.save().ok

    again = UserRegistry(storage=storage, bootstrap=_unreachable_bootstrap(), clock=FakeClock(0))
    res = again.load()
    assert res.value == LoadSource.STORAGE
    before = {u.username: u.model_dump() for u in (reg.get_user("admin"), reg.get_user("mario"))}
    after = {u.username: u.model_dump() for u in (again.get_user("admin"), again.get_user("mario"))}
    assert before == after


def test_reads_legacy_snapshot_without_permissions():
    legacy = [
        {
            "username": "admin",
            "password": "2977",
            "displayName": "Amministratore",
            "role": "admin",
            "active": True,
            "createdAt": "2024-01-01T00:00:00.000Z",
        }
    ]
    reg = UserRegistry(storage=MemoryStorage({"smirt_users": json.dumps(legacy)}))
    assert reg.load().value == LoadSource.STORAGE
    u = reg.get_user("admin")
    assert u.display_name == "Amministratore"
    assert u.permissions == []
    assert u.updated_at is None


def test_bootstrap_replaces_registry_and_persists():
    storage = MemoryStorage()
    UserRegistry(storage=storage).load()  # seeds admin
    http = FakeHttp(
        FakeResponse(
            200,
            {
                "users": {
                    "anna": {"password": "a1", "displayName": "Anna", "role": "operator", "permissions": ["x"]},
                    "boss": {"password": "b1", "displayName": "Boss", "role": "admin"},
                }
            },
        )
    )
    reg = UserRegistry(storage=storage, bootstrap=BootstrapSource(BootstrapConfig(url="http://h/users.json"), session=http), clock=FakeClock())
    res = reg.load()
    assert res.value == LoadSource.BOOTSTRAP
    assert sorted(u.username for u in reg.list_users()) == ["anna", "boss"]
    assert "admin" not in reg
    assert all(u.active for u in reg.list_users())
    assert reg.get_user("boss").permissions == []
    assert reg.get_user("anna").created_at == "2023-11-14T22:13:20Z"
    stored = json.loads(storage.get("smirt_users"))
    assert sorted(u["username"] for u in stored) == ["anna", "boss"]


def test_bootstrap_with_no_users_falls_back():
    http = FakeHttp(FakeResponse(200, {"users": {}}))
    reg = UserRegistry(storage=MemoryStorage(), bootstrap=BootstrapSource(BootstrapConfig(url="http://h/u"), session=http))
    res = reg.load()
    assert res.value == LoadSource.DEFAULT
    assert "admin" in reg


def test_add_user_twice_returns_duplicate_and_keeps_size(registry):
    first = registry.add_user({"username": "luca", "password": "pw"})
    assert first.ok
    assert first.value.active is True
    assert first.value.display_name == "luca"
    size = len(registry)
    second = registry.add_user({"username": "luca", "password": "other"})
    assert not second.ok
    assert second.code == "duplicate_user"
    assert len(registry) == size
    assert registry.get_user("luca").password == "pw"


def test_add_user_rejects_invalid_input(registry):
    res = registry.add_user({"username": "   ", "password": "pw"})
    assert not res.ok
    assert res.code == "validation_error"
    res = registry.add_user({"username": "x"})
    assert res.code == "validation_error"


def test_update_user_merges_only_present_fields(registry, clock):
    registry.add_user({"username": "gio", "password": "pw", "display_name": "Gio", "role": "operator"})
    clock.advance(10)
    res = registry.update_user("gio", {"display_name": "Giovanni"})
    assert res.ok
    u = res.value
    assert u.display_name == "Giovanni"
    assert u.role == "operator"
    assert u.password == "pw"
    assert u.updated_at == "2023-11-14T22:13:30Z"


def test_update_user_rejects_unknown_or_immutable_fields(registry):
    res = registry.update_user("admin", {"username": "root"})
    assert res.code == "validation_error"
    res = registry.update_user("admin", {"is_superuser": True})
    assert res.code == "validation_error"
    assert registry.get_user("admin").username == "admin"


def test_update_unknown_user(registry):
    res = registry.update_user("ghost", UserPatch(active=False))
    assert not res.ok
    assert res.code == "user_not_found"


def test_activate_and_deactivate(registry):
    assert registry.deactivate_user("admin").value.active is False
    assert registry.get_user("admin").active is False
    assert registry.activate_user("admin").value.active is True


def test_change_password(registry):
    assert registry.change_password("ghost", "a", "b").code == "user_not_found"
    assert registry.change_password("admin", "wrong", "b").code == "invalid_credential"
    res = registry.change_password("admin", DEFAULT_ADMIN_PASSWORD, "n3w-secret")
    assert res.ok
    assert registry.get_user("admin").password == "n3w-secret"
    assert registry.change_password("admin", "n3w-secret", "").code == "validation_error"


def test_list_users_has_no_password(registry):
    registry.add_user({"username": "a", "password": "pw"})
    for u in registry.list_users():
        dumped = u.model_dump(by_alias=True)
        assert "password" not in dumped
        assert not hasattr(u, "password")


def test_save_failure_is_reported_not_raised():
    storage = FailingStorage(fail_set=False)
    reg = UserRegistry(storage=storage)
    reg.load()
    storage.fail_set = True
    res = reg.save()
    assert not res.ok
    assert res.code == "persistence_failure"

    added = reg.add_user({"username": "z", "password": "pw"})
    assert added.ok
    assert "z" in reg
    assert [w.code for w in added.warnings] == ["persistence_failure"]


def test_storage_and_bootstrap_failures_are_logged_by_code():
    log = RecordingLogger()
    storage = FailingStorage(fail_set=False)
    reg = UserRegistry(storage=storage, bootstrap=_unreachable_bootstrap(), logger=log)
    reg.load()
    assert any("bootstrap_unavailable" in m for m in log.messages("warning"))

    storage.fail_set = True
    assert reg.add_user({"username": "z", "password": "s3cret-pw"}).ok
    errors = log.messages("error")
    assert any("persistence_failure" in m and "smirt_users" in m for m in errors)
    assert not any("s3cret-pw" in m for m in log.messages())
