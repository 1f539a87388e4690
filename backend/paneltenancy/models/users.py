from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import object_session, relationship

from paneltenancy.core.db import Base
from paneltenancy.models.memberships import Membership
from paneltenancy.models.mixins import TimestampMixin
from paneltenancy.tenancy.contracts import DefaultTenantAware, TenantAware


class User(TenantAware, DefaultTenantAware, TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String, nullable=False)
    # Last tenant the user created or picked; used as the default tenant.
    current_tenant_id = Column(
        Integer,
        ForeignKey(
            "tenants.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_users_current_tenant_id",
        ),
        nullable=True,
    )

    memberships = relationship(
        "Membership",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"

    def get_tenants(self, panel) -> list:
        db = object_session(self)
        if db is None:
            return []
        tenant_model = panel.tenancy.get_tenant_model()
        # Membership-store order (ascending membership id), then tenants owned
        # through owner_id alone (ascending tenant id). Not a business ranking.
        tenants = (
            db.query(tenant_model)
            .join(Membership, Membership.tenant_id == tenant_model.id)
            .filter(Membership.user_id == self.id)
            .order_by(Membership.id.asc())
            .all()
        )
        if hasattr(tenant_model, "owner_id"):
            seen = {tenant.id for tenant in tenants}
            owned = (
                db.query(tenant_model)
                .filter(tenant_model.owner_id == self.id)
                .order_by(tenant_model.id.asc())
                .all()
            )
            tenants.extend(tenant for tenant in owned if tenant.id not in seen)
        return tenants

    def can_access_tenant(self, tenant) -> bool:
        db = object_session(self)
        if tenant is None or db is None or tenant.id is None:
            return False
        owner_id = getattr(tenant, "owner_id", None)
        if owner_id is not None and owner_id == self.id:
            return True
        membership = (
            db.query(Membership.id)
            .filter(Membership.tenant_id == tenant.id, Membership.user_id == self.id)
            .first()
        )
        return membership is not None

    def get_default_tenant(self, panel):
        db = object_session(self)
        if db is None or self.current_tenant_id is None:
            return None
        return db.get(panel.tenancy.get_tenant_model(), self.current_tenant_id)
