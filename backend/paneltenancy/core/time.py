from datetime import datetime, timezone


def utcnow() -> datetime:
    # Naive UTC keeps SQLite and Postgres DateTime columns comparable.
    return datetime.now(timezone.utc).replace(tzinfo=None)
