from __future__ import annotations

import importlib.util
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from teamboard.models.refresh_token import RefreshToken
from teamboard.services import session_store

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "cleanup_sessions.py"


@pytest.fixture()
def cleanup_module():
    spec = importlib.util.spec_from_file_location("cleanup_sessions", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class _NoCloseSession:
    """Wraps the test session so the script's close() doesn't detach it."""

    def __init__(self, db):
        self._db = db

    def __getattr__(self, name):
        return getattr(self._db, name)

    def close(self):
        pass


def _seed(db_session, users):
    user_a, user_b = users
    now = datetime.now(timezone.utc)
    session_store.upsert(db_session, user_a.id, "expired", now - timedelta(minutes=5))
    session_store.upsert(db_session, user_b.id, "live", now + timedelta(hours=1))


def test_dry_run_counts_without_deleting(cleanup_module, db_session, users, capsys):
    _seed(db_session, users)

    rc = cleanup_module.main(["--dry-run"], session_factory=lambda: _NoCloseSession(db_session))

    assert rc == 0
    assert "[dry-run] 1 session record(s) would be purged." in capsys.readouterr().out
    assert db_session.query(RefreshToken).count() == 2


def test_purge_deletes_expired(cleanup_module, db_session, users, capsys):
    _seed(db_session, users)

    rc = cleanup_module.main([], session_factory=lambda: _NoCloseSession(db_session))

    assert rc == 0
    assert "Purged 1 session record(s)." in capsys.readouterr().out
    assert [rt.token for rt in db_session.query(RefreshToken).all()] == ["live"]


def test_negative_retention_rejected(cleanup_module):
    assert cleanup_module.main(["--retention-days", "-1"]) == 2
