from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from paneltenancy.core.db import Base
from paneltenancy.models.enums import RoleEnum
from paneltenancy.models.mixins import TimestampMixin


class Membership(TimestampMixin, Base):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_membership_user_tenant"),
        Index("ix_memberships_tenant_role", "tenant_id", "role"),
        Index("ix_memberships_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        Enum(
            RoleEnum,
            name="membership_role_enum",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=RoleEnum.MEMBER,
    )

    tenant = relationship("Tenant", back_populates="memberships", lazy="selectin")
    user = relationship("User", back_populates="memberships", lazy="selectin")
