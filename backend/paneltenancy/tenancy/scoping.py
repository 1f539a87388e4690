"""
Keeps database access tenant-scoped.

Tenant-scoped models inherit BelongsToTenant. Each request session carries a
ScopedStore strategy in session.info; the session hooks below ask it to

  - add the tenant predicate to ORM selects, updates and deletes (row mode),
  - fill the tenant column on new rows (row mode),
  - route the model to the tenant's own engine (connection mode).

Code may use the store's read/create/write methods or the session directly;
both paths go through the same hooks.

Example:
    store = current_store(db)
    store.read(Invoice).filter(Invoice.paid.is_(False)).all()
"""

from contextlib import contextmanager
import logging
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, event, inspect as sa_inspect
from sqlalchemy.sql.elements import BindParameter
from sqlalchemy.orm import Session, declared_attr, with_loader_criteria

from paneltenancy.core.config import settings
from paneltenancy.core.metrics import ISOLATION_CONTEXT_MISSING_TOTAL
from paneltenancy.tenancy.constants import SCOPED_STORE_INFO_KEY, SKIP_TENANT_SCOPE_OPTION
from paneltenancy.tenancy.errors import (
    IsolationContextMissing,
    TenancyError,
    TenantAccessDenied,
    TenantReassignmentError,
)
from paneltenancy.tenancy.modes import TenancyMode, parse_mode

logger = logging.getLogger(__name__)


class BelongsToTenant:
    """Marks a mapped class as tenant-scoped. Carries no column by itself."""

    __tenant_scoped__ = True


class TenantColumnMixin(BelongsToTenant):
    """Row-scoped entities: adds the tenant_id column the row filter works on."""

    @declared_attr
    def tenant_id(cls):
        return Column(
            Integer,
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


def is_tenant_scoped(model) -> bool:
    return isinstance(model, type) and issubclass(model, BelongsToTenant)


def _iter_scoped_classes(base=BelongsToTenant):
    for subclass in base.__subclasses__():
        yield subclass
        yield from _iter_scoped_classes(subclass)


def scoped_mappers():
    seen = set()
    for cls in _iter_scoped_classes():
        mapper = sa_inspect(cls, raiseerr=False)
        if mapper is None or not hasattr(mapper, "local_table") or cls in seen:
            continue
        seen.add(cls)
        yield mapper


def tenant_tables(metadata) -> list:
    """Tables that live on a tenant's own endpoint under connection switching."""
    tables = []
    for mapper in scoped_mappers():
        if issubclass(mapper.class_, TenantColumnMixin):
            continue
        table = mapper.local_table
        if table.metadata is metadata and table not in tables:
            tables.append(table)
    return tables


def _model_name(model) -> str:
    return getattr(model, "__name__", str(model))


class ScopedStore:
    """
    Uniform access to tenant-scoped entities. Subclasses decide how the
    active tenant is enforced.
    """

    mode: Optional[TenancyMode] = None

    def __init__(self, session: Session, tenant=None, *, column: str = "tenant_id"):
        self.session = session
        self.tenant = tenant
        self.column = column

    def __repr__(self) -> str:
        tenant_id = getattr(self.tenant, "id", None)
        return f"{type(self).__name__}(tenant_id={tenant_id!r})"

    @property
    def tenant_id(self):
        return self.tenant.id if self.tenant is not None else None

    def read(self, model):
        self._guard(model)
        return self.session.query(model)

    def create(self, instance):
        self._guard(type(instance))
        self.session.add(instance)
        self.session.flush()
        return instance

    def write(self, instance):
        self._guard(type(instance))
        self.session.add(instance)
        self.session.flush()
        return instance

    def read_unscoped(self, model):
        """Cross-tenant read for administrative tooling. Never used implicitly."""
        logger.info("tenant.unscoped_read", extra={"model": _model_name(model)})
        return self.session.query(model).execution_options(**{SKIP_TENANT_SCOPE_OPTION: True})

    # Hooks driven by the session events.

    def _guard(self, model) -> None:
        return None

    def apply_read_scope(self, orm_execute_state) -> None:
        return None

    def prepare_new(self, instance) -> None:
        return None

    def check_dirty(self, instance) -> None:
        if not hasattr(type(instance), self.column):
            return
        history = sa_inspect(instance).attrs[self.column].history
        if not history.added or not history.deleted:
            return
        before, after = history.deleted[0], history.added[0]
        if before is not None and before != after:
            raise TenantReassignmentError(
                f"{_model_name(type(instance))} cannot move from tenant {before} to {after}."
            )

    def check_bulk_update(self, orm_execute_state) -> None:
        """Reject UPDATE statements that set the ownership column to anything but the active tenant."""
        mapper = orm_execute_state.bind_mapper
        if mapper is None:
            return
        model = mapper.class_
        if not is_tenant_scoped(model) or not hasattr(model, self.column):
            return
        for key, value in _update_values(orm_execute_state.statement, orm_execute_state.parameters):
            if _column_key(key) != self.column:
                continue
            target = value.effective_value if isinstance(value, BindParameter) else value
            if self.tenant is not None and target == self.tenant.id:
                continue
            raise TenantReassignmentError(
                f"{_model_name(model)} rows cannot be moved to another tenant by a bulk update."
            )

    def bind_for(self, mapper):
        return None


class UnscopedStore(ScopedStore):
    """Tenancy disabled for the panel: no isolation is applied."""


class RowScopedStore(ScopedStore):
    mode = TenancyMode.ROW

    def _has_column(self, model) -> bool:
        return is_tenant_scoped(model) and hasattr(model, self.column)

    def write(self, instance):
        model = type(instance)
        if self.tenant is not None and self._has_column(model):
            owner = getattr(instance, self.column)
            if owner is not None and owner != self.tenant.id:
                raise TenantAccessDenied(f"{_model_name(model)} belongs to another tenant.")
        return super().write(instance)

    def criteria_options(self):
        options = []
        for mapper in scoped_mappers():
            model = mapper.class_
            if not hasattr(model, self.column):
                continue
            options.append(
                with_loader_criteria(
                    model,
                    getattr(model, self.column) == self.tenant.id,
                    include_aliases=True,
                )
            )
        return options

    def apply_read_scope(self, orm_execute_state) -> None:
        if self.tenant is None:
            return
        options = self.criteria_options()
        if options:
            orm_execute_state.statement = orm_execute_state.statement.options(*options)

    def prepare_new(self, instance) -> None:
        if self.tenant is None or not self._has_column(type(instance)):
            return
        if getattr(instance, self.column) is None:
            setattr(instance, self.column, self.tenant.id)


class ConnectionScopedStore(ScopedStore):
    mode = TenancyMode.CONNECTION

    def __init__(self, session: Session, tenant=None, *, connections=None, column: str = "tenant_id"):
        super().__init__(session, tenant, column=column)
        self.connections = connections

    def _require_tenant(self, model):
        if self.tenant is None or self.connections is None:
            ISOLATION_CONTEXT_MISSING_TOTAL.labels(model=_model_name(model)).inc()
            logger.warning("tenant.isolation_context_missing", extra={"model": _model_name(model)})
            raise IsolationContextMissing(
                f"{_model_name(model)} is tenant-scoped but no tenant is active."
            )
        return self.tenant

    def _guard(self, model) -> None:
        if is_tenant_scoped(model):
            self._require_tenant(model)

    def read_unscoped(self, model):
        if is_tenant_scoped(model):
            raise TenancyError(
                "Unscoped reads are unavailable with connection switching; "
                "open tenant_session() for each tenant instead."
            )
        return super().read_unscoped(model)

    def prepare_new(self, instance) -> None:
        self._require_tenant(type(instance))

    def bind_for(self, mapper):
        model = mapper.class_
        if not is_tenant_scoped(model):
            return None
        return self.connections.engine_for(self._require_tenant(model))


def _default_store(session: Session) -> ScopedStore:
    # Sessions opened without a request or tenant_session(): nothing was resolved.
    if parse_mode(settings.DEFAULT_TENANCY_MODE).is_connection:
        return ConnectionScopedStore(session)
    return UnscopedStore(session)


def build_store(session: Session, panel, tenant=None) -> ScopedStore:
    """Pick the isolation strategy for the panel's mode."""
    if panel is None or not panel.has_tenancy():
        return UnscopedStore(session)
    column = panel.tenancy.ownership_column
    if panel.mode.is_connection:
        return ConnectionScopedStore(session, tenant, connections=panel.connections, column=column)
    return RowScopedStore(session, tenant, column=column)


def install_store(session: Session, store: ScopedStore) -> ScopedStore:
    session.info[SCOPED_STORE_INFO_KEY] = store
    return store


def detach_store(session: Session) -> None:
    session.info.pop(SCOPED_STORE_INFO_KEY, None)


def current_store(session: Session) -> ScopedStore:
    store = session.info.get(SCOPED_STORE_INFO_KEY)
    if store is None:
        store = _default_store(session)
    return store


class TenantSession(Session):
    """Session that lets the installed ScopedStore pick the bind for tenant-scoped models."""

    def get_bind(self, mapper=None, clause=None, **kw):
        if mapper is not None:
            bind = current_store(self).bind_for(sa_inspect(mapper).mapper)
            if bind is not None:
                return bind
        return super().get_bind(mapper=mapper, clause=clause, **kw)


def _column_key(key):
    if isinstance(key, str):
        return key
    return getattr(key, "key", None)


def _update_values(statement, parameters=None):
    """SET pairs of an UPDATE, including per-row dicts of a bulk UPDATE by primary key."""
    values = getattr(statement, "_values", None) or {}
    pairs = list(values.items()) + list(getattr(statement, "_ordered_values", None) or ())
    if hasattr(parameters, "items"):
        parameters = [parameters]
    for row in parameters or ():
        pairs.extend(row.items())
    return pairs


@event.listens_for(TenantSession, "do_orm_execute")
def _apply_tenant_scope(orm_execute_state) -> None:
    if orm_execute_state.is_update:
        current_store(orm_execute_state.session).check_bulk_update(orm_execute_state)
    if orm_execute_state.execution_options.get(SKIP_TENANT_SCOPE_OPTION, False):
        return
    if orm_execute_state.is_select and orm_execute_state.is_column_load:
        return
    if not (
        orm_execute_state.is_select
        or orm_execute_state.is_update
        or orm_execute_state.is_delete
    ):
        return
    current_store(orm_execute_state.session).apply_read_scope(orm_execute_state)


@event.listens_for(TenantSession, "before_flush")
def _scope_pending_writes(session, flush_context, instances) -> None:
    store = current_store(session)
    for instance in list(session.new):
        if is_tenant_scoped(type(instance)):
            store.prepare_new(instance)
    for instance in list(session.dirty):
        if is_tenant_scoped(type(instance)):
            store.check_dirty(instance)


@contextmanager
def tenant_session(panel, tenant, *, session_factory=None):
    """
    Scoped store for work outside an HTTP request (jobs, scripts, admin tools).
    The tenant must be passed in; nothing is resolved implicitly.
    """
    if session_factory is None:
        from paneltenancy.core import db as db_module  # local import to avoid cycles

        session_factory = db_module.SessionLocal
    session = session_factory()
    store = install_store(session, build_store(session, panel, tenant))
    try:
        yield store
    finally:
        detach_store(session)
        session.close()
