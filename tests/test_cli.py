"""Tests for main.py -- the provisioning and maintenance CLI."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

import main
from auth.schema import create_db_engine, now_iso
from auth.store import IdentityStore, PasscodeStore


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _run(db_url: str, *args: str) -> int:
    return main.main(["--database-url", db_url, *args])


def test_no_command_prints_help(capsys):
    assert main.main([]) == 1
    assert "COMMAND" in capsys.readouterr().out


def test_provision_hotel_and_admin(db_url, capsys):
    assert _run(db_url, "init-db") == 0
    assert _run(db_url, "create-hotel", "Seaside Inn") == 0
    assert "Hotel 1 created." in capsys.readouterr().out

    rc = _run(
        db_url, "create-admin", "--hotel-id", "1", "--name", "Ana", "--email", "ana@seaside.example", "--phone", "+1555"
    )
    assert rc == 0
    assert "Admin 1 created for hotel 1." in capsys.readouterr().out

    engine = create_db_engine(db_url)
    admin = IdentityStore(engine).get_admin_by_email("ana@seaside.example")
    engine.dispose()
    assert admin.hotel_id == 1
    assert admin.hotel_name == "Seaside Inn"


def test_create_admin_unknown_hotel(db_url, capsys):
    rc = _run(db_url, "create-admin", "--hotel-id", "9", "--name", "X", "--email", "x@x.example", "--phone", "+1")
    assert rc == 1
    assert "does not exist" in capsys.readouterr().err


def test_create_admin_duplicate_email(db_url, capsys):
    _run(db_url, "create-hotel", "Seaside Inn")
    args = ("create-admin", "--hotel-id", "1", "--name", "A", "--email", "dup@x.example", "--phone", "+1")
    assert _run(db_url, *args) == 0
    assert _run(db_url, *args) == 1
    assert "already exists" in capsys.readouterr().err


def test_request_code(db_url, capsys):
    _run(db_url, "create-hotel", "Seaside Inn")
    _run(db_url, "create-admin", "--hotel-id", "1", "--name", "A", "--email", "a@x.example", "--phone", "+1")
    capsys.readouterr()

    assert _run(db_url, "request-code", "a@x.example") == 0
    out = capsys.readouterr().out
    code = out.split()[1]
    assert len(code) == 6 and code.isdigit()

    assert _run(db_url, "request-code", "nobody@x.example") == 1
    assert "Admin not found" in capsys.readouterr().err


def test_purge_codes(db_url, capsys):
    _run(db_url, "create-hotel", "Seaside Inn")
    _run(db_url, "create-admin", "--hotel-id", "1", "--name", "A", "--email", "a@x.example", "--phone", "+1")

    engine = create_db_engine(db_url)
    passcodes = PasscodeStore(engine)
    old = passcodes.create(1, "123456", now_iso(datetime.now(timezone.utc) - timedelta(days=3)))
    passcodes.mark_used(old.id)
    fresh = passcodes.create(1, "654321", now_iso(datetime.now(timezone.utc) + timedelta(minutes=5)))
    capsys.readouterr()

    assert _run(db_url, "purge-codes") == 0
    assert "Removed 1 stale passcode record(s)." in capsys.readouterr().out
    assert [r.id for r in passcodes.list_for_admin(1)] == [fresh.id]
    engine.dispose()
