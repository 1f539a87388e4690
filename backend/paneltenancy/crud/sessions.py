from sqlalchemy.orm import Session

from paneltenancy.models.sessions import SessionEntry


def get_entry(db: Session, session_id: str, key: str) -> SessionEntry | None:
    return (
        db.query(SessionEntry)
        .filter(SessionEntry.session_id == session_id, SessionEntry.key == key)
        .first()
    )


def put_entry(db: Session, session_id: str, key: str, value) -> SessionEntry:
    entry = get_entry(db, session_id, key)
    if entry is None:
        entry = SessionEntry(session_id=session_id, key=key)
        db.add(entry)
    entry.value = value
    db.flush()
    return entry


def delete_entry(db: Session, session_id: str, key: str) -> bool:
    entry = get_entry(db, session_id, key)
    if entry is None:
        return False
    db.delete(entry)
    db.flush()
    return True

