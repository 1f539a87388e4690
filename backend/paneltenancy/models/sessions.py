from sqlalchemy import JSON, Column, Integer, String, UniqueConstraint

from paneltenancy.core.db import Base
from paneltenancy.models.mixins import TimestampMixin


class SessionEntry(TimestampMixin, Base):
    """One key/value pair of a user's persisted session (keyed by the token's sid)."""

    __tablename__ = "panel_sessions"
    __table_args__ = (
        UniqueConstraint("session_id", "key", name="uq_panel_sessions_session_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    value = Column(JSON, nullable=True)
