from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from paneltenancy.core.db import Base
from paneltenancy.models.mixins import TenantDisplayMixin, TimestampMixin


class Tenant(TenantDisplayMixin, TimestampMixin, Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Connection-switched panels: overrides the panel's URL template.
    database_url = Column(String, nullable=True)

    memberships = relationship(
        "Membership",
        back_populates="tenant",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Membership.id",
    )
    owner = relationship(
        "User",
        foreign_keys=[owner_id],
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"Tenant(id={self.id!r}, slug={self.slug!r})"
