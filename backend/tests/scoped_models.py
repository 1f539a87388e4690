from sqlalchemy import Column, Integer, String

from paneltenancy.core.db import Base
from paneltenancy.tenancy.scoping import BelongsToTenant, TenantColumnMixin


class Project(TenantColumnMixin, Base):
    """Row-scoped: shares the central tables, filtered by tenant_id."""

    __tablename__ = "test_projects"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="open")


class Note(BelongsToTenant, Base):
    """Connection-switched: lives on each tenant's own database."""

    __tablename__ = "test_notes"

    id = Column(Integer, primary_key=True)
    body = Column(String(200), nullable=False)
