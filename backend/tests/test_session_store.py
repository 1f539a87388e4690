import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

from paneltenancy.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from paneltenancy.tenancy.session_store import DatabaseSessionStore, MemorySessionStore, SessionStore
from tests.db_utils import setup_db


def test_database_store_is_keyed_by_session(tmp_path):
    SessionLocal = setup_db(tmp_path)
    with SessionLocal() as db:
        first = DatabaseSessionStore(db, "sid-1")
        second = DatabaseSessionStore(db, "sid-2")
        first.put("admin.tenant_id", 3)
        first.put("admin.tenant_id", 4)
        db.commit()

        assert first.get("admin.tenant_id") == 4
        assert second.get("admin.tenant_id") is None
        assert second.get("admin.tenant_id", "fallback") == "fallback"

        first.forget("admin.tenant_id")
        db.commit()
        assert first.get("admin.tenant_id") is None


def test_flash_messages_are_pulled_once():
    store = MemorySessionStore()
    store.flash_success("Saved.")
    store.flash_errors({"name": "The name field is required."}, old_input={"name": ""})

    assert store.pull_flash() == {
        "success": "Saved.",
        "errors": {"name": "The name field is required."},
        "old": {"name": ""},
    }
    assert store.pull_flash() == {"success": None, "errors": {}, "old": {}}


def test_session_store_requires_storage_methods():
    class ReadOnlyStore(SessionStore):
        def get(self, key, default=None):
            return default

    with pytest.raises(TypeError):
        SessionStore()
    with pytest.raises(TypeError):
        ReadOnlyStore()


def test_access_token_carries_session_id():
    token = create_access_token({"sub": "1"})
    payload = decode_access_token(token)
    assert payload["sub"] == "1"
    assert payload["sid"]

    pinned = decode_access_token(create_access_token({"sub": "1", "sid": "abc"}))
    assert pinned["sid"] == "abc"


def test_password_hashing():
    hashed = get_password_hash("pw")
    assert hashed != "pw"
    assert verify_password("pw", hashed)
    assert not verify_password("other", hashed)
    assert not verify_password("pw", "not-a-hash")
