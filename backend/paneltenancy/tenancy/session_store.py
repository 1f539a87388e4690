"""
Persisted per-session key/value storage.

The tenant pointer and flash messages live here. Values read back are
untrusted: the resolver re-checks access before honouring a pointer.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.orm import Session

from paneltenancy.crud.sessions import delete_entry, get_entry, put_entry
from paneltenancy.tenancy.constants import FLASH_ERRORS_KEY, FLASH_OLD_INPUT_KEY, FLASH_SUCCESS_KEY


class SessionStore(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def forget(self, key: str) -> None:
        ...

    def pull(self, key: str, default: Any = None) -> Any:
        value = self.get(key, default)
        self.forget(key)
        return value

    def flash_success(self, message: str) -> None:
        self.put(FLASH_SUCCESS_KEY, message)

    def flash_errors(self, errors: dict[str, str], *, old_input: Optional[dict] = None) -> None:
        self.put(FLASH_ERRORS_KEY, errors)
        if old_input:
            self.put(FLASH_OLD_INPUT_KEY, old_input)

    def pull_flash(self) -> dict[str, Any]:
        return {
            "success": self.pull(FLASH_SUCCESS_KEY),
            "errors": self.pull(FLASH_ERRORS_KEY) or {},
            "old": self.pull(FLASH_OLD_INPUT_KEY) or {},
        }


class DatabaseSessionStore(SessionStore):
    """Rows in panel_sessions keyed by the access token's session id. Writes flush, callers commit."""

    def __init__(self, db: Session, session_id: str):
        self.db = db
        self.session_id = session_id

    def get(self, key: str, default: Any = None) -> Any:
        entry = get_entry(self.db, self.session_id, key)
        if entry is None or entry.value is None:
            return default
        return entry.value

    def put(self, key: str, value: Any) -> None:
        put_entry(self.db, self.session_id, key, value)

    def forget(self, key: str) -> None:
        delete_entry(self.db, self.session_id, key)


class MemorySessionStore(SessionStore):
    """Dict-backed store for callers without a persisted session (jobs, scripts)."""

    def __init__(self, data: Optional[dict] = None):
        self.data = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self.data[key] = value

    def forget(self, key: str) -> None:
        self.data.pop(key, None)
