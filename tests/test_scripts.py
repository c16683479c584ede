from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"


def _load(name: str):
    spec = importlib.util.spec_from_file_location(f"portal_script_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def calls(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return []


def _record(calls, name):
    def fn(db_config, **kw):
        calls.append((name, kw))
        return ["departments", "users", "pto_types", "pto_balances"] if name == "list_tables" else None

    return fn


def _stub(module, monkeypatch, calls, names):
    for name in names:
        monkeypatch.setattr(module, name, _record(calls, name))


def test_init_db_applies_schema_only_by_default(monkeypatch, calls):
    init_db = _load("init_db")
    _stub(init_db, monkeypatch, calls, ["apply_schema", "apply_seed_sql", "ensure_demo_users", "list_tables"])

    assert init_db.main([]) == 0
    assert [c[0] for c in calls] == ["apply_schema", "list_tables"]
    assert calls[0][1]["schema_path"].name == "schema.sql"


def test_init_db_can_seed_in_the_same_run(monkeypatch, calls):
    init_db = _load("init_db")
    _stub(init_db, monkeypatch, calls, ["apply_schema", "apply_seed_sql", "ensure_demo_users", "list_tables"])

    assert init_db.main(["--seed", "--year", "2027"]) == 0
    assert [c[0] for c in calls] == ["apply_schema", "apply_seed_sql", "ensure_demo_users", "list_tables"]
    assert calls[1][1]["seed_path"].name == "seed.sql"
    assert calls[2][1] == {"year": 2027}


def test_init_db_stops_on_a_missing_schema_file(monkeypatch, calls, tmp_path):
    init_db = _load("init_db")
    _stub(init_db, monkeypatch, calls, ["apply_schema", "list_tables"])

    assert init_db.main(["--schema", str(tmp_path / "nope.sql")]) == 1
    assert calls == []


def test_seed_db_requires_the_schema(monkeypatch, calls):
    seed_db = _load("seed_db")
    _stub(seed_db, monkeypatch, calls, ["apply_seed_sql", "ensure_demo_users"])
    monkeypatch.setattr(seed_db, "list_tables", lambda db_config: ["departments"])

    assert seed_db.main([]) == 1
    assert calls == []


def test_seed_db_can_skip_demo_users(monkeypatch, calls):
    seed_db = _load("seed_db")
    _stub(seed_db, monkeypatch, calls, ["apply_seed_sql", "ensure_demo_users", "list_tables"])

    assert seed_db.main(["--no-demo-users"]) == 0
    assert [c[0] for c in calls] == ["list_tables", "apply_seed_sql"]
