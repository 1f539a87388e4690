import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

from paneltenancy.crud.tenants import create_tenant
from paneltenancy.models.enums import RoleEnum
from paneltenancy.tenancy.context import TenantContext
from paneltenancy.tenancy.errors import TenantAccessDenied, TenantNotFound
from paneltenancy.tenancy.panels import Panel, TenancyConfig
from paneltenancy.tenancy.resolver import TenantResolver, can_access
from paneltenancy.tenancy.session_store import MemorySessionStore
from tests.db_utils import setup_db
from tests.factories import make_membership, make_tenant, make_user


class GuestUser:
    """A user type that does not declare tenant membership."""

    id = 999


def _panel():
    return Panel("admin", "admin", tenancy=TenancyConfig(enabled=True))


def _context(panel, user):
    return TenantContext(request_id="test", panel=panel, mode=panel.mode, user=user)


def test_resolves_first_tenant_in_membership_order(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        user = make_user(db)
        second = make_tenant(db, name="Second", owner=owner)
        first = make_tenant(db, name="First", owner=owner)
        make_membership(db, tenant=second, user=user)
        make_membership(db, tenant=first, user=user)

        tenant, source = TenantResolver(panel, db, MemorySessionStore()).resolve(user)
        assert tenant.id == second.id
        assert source == "first"


def test_resolved_tenant_is_always_accessible(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        outsider = make_user(db)
        member = make_user(db)
        tenant_a = make_tenant(db, name="A", owner=owner)
        tenant_b = make_tenant(db, name="B", owner=owner)
        make_membership(db, tenant=tenant_b, user=member)

        for user in (owner, outsider, member):
            for pointer in (None, tenant_a.id, tenant_b.id, 12345):
                store = MemorySessionStore()
                if pointer is not None:
                    store.put(panel.session_tenant_key, pointer)
                ctx = _context(panel, user)
                tenant = TenantResolver(panel, db, store).establish(ctx, user)
                assert tenant is None or can_access(user, tenant)


def test_resolution_is_idempotent(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        make_tenant(db, name="Only", owner=owner)
        store = MemorySessionStore()
        resolver = TenantResolver(panel, db, store)

        first = resolver.establish(_context(panel, owner), owner)
        second = resolver.establish(_context(panel, owner), owner)
        assert first.id == second.id
        assert store.get(panel.session_tenant_key) == first.id


def test_session_pointer_wins_over_default_tenant(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        tenant_a = make_tenant(db, name="A", owner=owner)
        tenant_b = make_tenant(db, name="B", owner=owner)
        owner.current_tenant_id = tenant_a.id
        db.commit()

        store = MemorySessionStore({panel.session_tenant_key: tenant_b.id})
        tenant, source = TenantResolver(panel, db, store).resolve(owner)
        assert (tenant.id, source) == (tenant_b.id, "session")

        tenant, source = TenantResolver(panel, db, MemorySessionStore()).resolve(owner)
        assert (tenant.id, source) == (tenant_a.id, "default")


def test_stale_pointer_is_discarded(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        member = make_user(db)
        kept = make_tenant(db, name="Kept", owner=owner)
        revoked = make_tenant(db, name="Revoked", owner=owner)
        make_membership(db, tenant=kept, user=member)

        store = MemorySessionStore({panel.session_tenant_key: revoked.id})
        ctx = _context(panel, member)
        tenant = TenantResolver(panel, db, store).establish(ctx, member)

        assert tenant.id == kept.id
        assert ctx.source == "first"
        assert store.get(panel.session_tenant_key) == kept.id


def test_default_tenant_without_access_is_skipped(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        member = make_user(db)
        private = make_tenant(db, name="Private", owner=owner)
        shared = make_tenant(db, name="Shared", owner=owner)
        make_membership(db, tenant=shared, user=member)
        member.current_tenant_id = private.id
        db.commit()

        tenant, source = TenantResolver(panel, db, MemorySessionStore()).resolve(member)
        assert (tenant.id, source) == (shared.id, "first")


def test_route_tenant_requires_access(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        outsider = make_user(db)
        make_tenant(db, name="Acme", owner=owner)
        store = MemorySessionStore()

        ctx = _context(panel, outsider)
        with pytest.raises(TenantAccessDenied):
            TenantResolver(panel, db, store).establish(ctx, outsider, "acme")
        assert ctx.tenant is None
        assert store.get(panel.session_tenant_key) is None

        ctx = _context(panel, owner)
        tenant = TenantResolver(panel, db, store).establish(ctx, owner, "acme")
        assert tenant.slug == "acme"
        assert ctx.source == "route"


def test_route_tenant_accepts_numeric_id_and_rejects_unknown(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        tenant = make_tenant(db, name="Acme", owner=owner)
        resolver = TenantResolver(panel, db, MemorySessionStore())

        found, source = resolver.resolve(owner, str(tenant.id))
        assert (found.id, source) == (tenant.id, "route")
        with pytest.raises(TenantNotFound):
            resolver.resolve(owner, "missing")


def test_user_without_tenant_capability_gets_no_tenant(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        tenant = make_tenant(db, name="Acme", owner=owner)
        guest = GuestUser()

        resolved, source = TenantResolver(panel, db, MemorySessionStore()).resolve(guest)
        assert (resolved, source) == (None, "none")
        assert can_access(guest, tenant) is False


def test_panel_without_tenancy_resolves_nothing(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = Panel("plain", "plain")
    with SessionLocal() as db:
        owner = make_user(db)
        make_tenant(db, name="Acme", owner=owner)
        resolved, source = TenantResolver(panel, db, MemorySessionStore()).resolve(owner)
        assert (resolved, source) == (None, "none")


def test_owner_role_membership_grants_access(tmp_path):
    SessionLocal = setup_db(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db)
        admin = make_user(db)
        tenant = make_tenant(db, name="Acme", owner=owner)
        make_membership(db, tenant=tenant, user=admin, role=RoleEnum.ADMIN)

        assert can_access(owner, tenant)
        assert can_access(admin, tenant)


def test_owner_without_membership_row_resolves_owned_tenant(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        user = make_user(db)
        tenant = create_tenant(db, "Acme", owner_id=user.id)
        db.commit()

        ctx = _context(panel, user)
        resolved = TenantResolver(panel, db, MemorySessionStore()).establish(ctx, user)
        assert can_access(user, tenant)
        assert resolved.id == tenant.id
        assert ctx.source == "first"
        assert [item.id for item in user.get_tenants(panel)] == [tenant.id]


def test_owner_only_tenants_follow_membership_tenants(tmp_path):
    SessionLocal = setup_db(tmp_path)
    panel = _panel()
    with SessionLocal() as db:
        owner = make_user(db)
        user = make_user(db)
        owned = create_tenant(db, "Owned", owner_id=user.id)
        joined = make_tenant(db, name="Joined", owner=owner)
        make_membership(db, tenant=joined, user=user)
        db.commit()

        assert [tenant.id for tenant in user.get_tenants(panel)] == [joined.id, owned.id]
        tenant, source = TenantResolver(panel, db, MemorySessionStore()).resolve(user)
        assert (tenant.id, source) == (joined.id, "first")
