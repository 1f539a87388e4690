import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "secret")
os.environ.setdefault("SKIP_MIGRATIONS", "1")

from fastapi.testclient import TestClient

from paneltenancy.main import create_app
from paneltenancy.models.enums import RoleEnum
from paneltenancy.models.memberships import Membership
from paneltenancy.models.tenants import Tenant
from paneltenancy.tenancy.panels import Panel, PanelRegistry, TenancyConfig
from tests.db_utils import setup_db
from tests.factories import make_membership, make_tenant, make_user


def _client(tmp_path, **tenancy):
    SessionLocal = setup_db(tmp_path)
    tenancy.setdefault("enabled", True)
    registry = PanelRegistry([Panel("admin", "admin", is_default=True, tenancy=TenancyConfig(**tenancy))])
    return TestClient(create_app(registry)), SessionLocal


def _login(client, email: str) -> dict:
    resp = client.post("/login", json={"email": email, "password": "pw"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_requires_authentication(tmp_path):
    client, _SessionLocal = _client(tmp_path)
    assert client.get("/admin").status_code == 401


def test_login_rejects_bad_password(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        make_user(db, email="owner@example.com")
    resp = client.post("/login", json={"email": "owner@example.com", "password": "wrong"})
    assert resp.status_code == 401


def test_unknown_panel_is_404(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        make_user(db, email="owner@example.com")
    headers = _login(client, "owner@example.com")
    assert client.get("/nope", headers=headers).status_code == 404


def test_register_scenario(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        make_user(db, email="new@example.com")
    headers = _login(client, "new@example.com")

    resp = client.get("/admin", headers=headers, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/tenant/register"

    form = client.get("/admin/tenant/register", headers=headers)
    assert form.status_code == 200
    assert form.json()["action"] == "/admin/tenant/register"

    resp = client.post(
        "/admin/tenant/register",
        json={"name": "Acme"},
        headers=headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"

    dashboard = client.get("/admin", headers=headers)
    assert dashboard.status_code == 200
    body = dashboard.json()
    assert body["tenant"]["slug"] == "acme"
    assert body["tenant_source"] == "session"
    assert body["flash"]["success"] == "Team 'Acme' created."
    assert [item["slug"] for item in body["menu"]["tenants"]] == ["acme"]

    # Flash messages are shown once.
    assert client.get("/admin", headers=headers).json()["flash"]["success"] is None


def test_register_validation_errors_are_flashed(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        make_user(db, email="new@example.com")
    headers = _login(client, "new@example.com")

    resp = client.post(
        "/admin/tenant/register",
        json={"name": "", "slug": "bad slug"},
        headers=headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/tenant/register"

    flash = client.get("/admin/tenant/register", headers=headers).json()["flash"]
    assert "name" in flash["errors"]
    assert flash["old"] == {"name": "", "slug": "bad slug"}
    with SessionLocal() as db:
        assert db.query(Tenant).count() == 0


def test_registration_disabled_without_tenants_is_forbidden(tmp_path):
    client, SessionLocal = _client(tmp_path, registration_enabled=False)
    with SessionLocal() as db:
        make_user(db, email="new@example.com")
    headers = _login(client, "new@example.com")

    assert client.get("/admin", headers=headers, follow_redirects=False).status_code == 403
    assert client.get("/admin/tenant/register", headers=headers).status_code == 403


def test_switch_round_trip(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        user = make_user(db, email="owner@example.com")
        make_tenant(db, name="Alpha", owner=user)
        beta = make_tenant(db, name="Beta", owner=user)
        beta_id = beta.id
    headers = _login(client, "owner@example.com")

    assert client.get("/admin", headers=headers).json()["tenant"]["slug"] == "alpha"

    resp = client.post(
        "/admin/tenant/switch",
        json={"tenant_id": beta_id},
        headers=headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"

    body = client.get("/admin", headers=headers).json()
    assert body["tenant"]["id"] == beta_id
    assert body["tenant_source"] == "session"


def test_switch_to_foreign_tenant_is_flashed(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        user = make_user(db, email="owner@example.com")
        other = make_user(db, email="other@example.com")
        make_tenant(db, name="Mine", owner=user)
        theirs = make_tenant(db, name="Theirs", owner=other)
        theirs_id = theirs.id
    headers = _login(client, "owner@example.com")

    resp = client.post(
        "/admin/tenant/switch",
        json={"tenant_id": theirs_id},
        headers={**headers, "Referer": "http://testserver/admin/tenant/settings"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/tenant/settings"

    body = client.get("/admin", headers=headers).json()
    assert body["tenant"]["slug"] == "mine"
    assert body["flash"]["errors"] == {"tenant": "You do not have access to this tenant."}


def test_tenant_addressed_route(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        user = make_user(db, email="owner@example.com")
        other = make_user(db, email="other@example.com")
        make_tenant(db, name="Alpha", owner=user)
        make_tenant(db, name="Beta", owner=user)
        make_tenant(db, name="Gamma", owner=other)
    headers = _login(client, "owner@example.com")

    body = client.get("/admin/beta", headers=headers).json()
    assert body["tenant"]["slug"] == "beta"
    assert body["tenant_source"] == "route"
    assert client.get("/admin/gamma", headers=headers).status_code == 403
    assert client.get("/admin/missing", headers=headers).status_code == 404

    # The route tenant becomes the session pointer.
    assert client.get("/admin", headers=headers).json()["tenant"]["slug"] == "beta"


def test_list_tenants(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        user = make_user(db, email="owner@example.com")
        alpha = make_tenant(db, name="Alpha", owner=user)
        make_tenant(db, name="Beta", owner=user)
        alpha_id = alpha.id
    headers = _login(client, "owner@example.com")

    resp = client.get("/admin/tenant", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert [(item["slug"], item["is_current"], item["url"]) for item in body["tenants"]] == [
        ("alpha", True, "/admin/alpha"),
        ("beta", False, "/admin/beta"),
    ]
    assert body["current"]["id"] == alpha_id


def test_invite_scenario(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db, email="owner@example.com")
        make_user(db, email="member@example.com")
        make_tenant(db, name="Acme", owner=owner)
    owner_headers = _login(client, "owner@example.com")

    resp = client.post(
        "/admin/tenant/settings/members",
        json={"email": "member@example.com", "role": "editor"},
        headers=owner_headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/tenant/settings"

    view = client.get("/admin/tenant/settings", headers=owner_headers).json()
    assert view["flash"]["success"] == "Team member added successfully."
    assert [(m["email"], m["role"]) for m in view["members"]] == [
        ("owner@example.com", "owner"),
        ("member@example.com", "editor"),
    ]

    member_headers = _login(client, "member@example.com")
    listing = client.get("/admin/tenant", headers=member_headers).json()
    assert [item["slug"] for item in listing["tenants"]] == ["acme"]

    resp = client.post(
        "/admin/tenant/settings/members",
        json={"email": "ghost@example.com", "role": "member"},
        headers=owner_headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    flash = client.get("/admin/tenant/settings", headers=owner_headers).json()["flash"]
    assert flash["errors"] == {"email": "No user found with this email address."}


def test_non_owner_rename_scenario(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db, email="owner@example.com")
        member = make_user(db, email="member@example.com")
        tenant = make_tenant(db, name="Acme", owner=owner)
        make_membership(db, tenant=tenant, user=member, role=RoleEnum.ADMIN)
        tenant_id = tenant.id
    headers = _login(client, "member@example.com")

    resp = client.patch(
        "/admin/tenant/settings",
        json={"name": "Hijacked"},
        headers=headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303

    view = client.get("/admin/tenant/settings", headers=headers).json()
    assert view["flash"]["errors"] == {"team": "You are not authorized to update this team."}
    assert view["team"]["name"] == "Acme"
    assert view["permissions"]["can_update_team"] is False
    with SessionLocal() as db:
        assert db.get(Tenant, tenant_id).name == "Acme"


def test_owner_rename_and_role_update(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db, email="owner@example.com")
        member = make_user(db, email="member@example.com")
        tenant = make_tenant(db, name="Acme", owner=owner)
        make_membership(db, tenant=tenant, user=member)
        member_id = member.id
    headers = _login(client, "owner@example.com")

    client.patch("/admin/tenant/settings", json={"name": "Acme Ltd"}, headers=headers, follow_redirects=False)
    client.patch(
        f"/admin/tenant/settings/members/{member_id}",
        json={"role": "admin"},
        headers=headers,
        follow_redirects=False,
    )

    view = client.get("/admin/tenant/settings", headers=headers).json()
    assert view["team"]["name"] == "Acme Ltd"
    assert view["members"][1]["role"] == "admin"


def test_member_leaves_team(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db, email="owner@example.com")
        member = make_user(db, email="member@example.com")
        tenant = make_tenant(db, name="Acme", owner=owner)
        make_membership(db, tenant=tenant, user=member)
        member_id = member.id
        owner_id = owner.id
    headers = _login(client, "member@example.com")

    resp = client.delete(
        f"/admin/tenant/settings/members/{owner_id}",
        headers=headers,
        follow_redirects=False,
    )
    assert resp.headers["location"] == "/admin/tenant/settings"

    resp = client.delete(
        f"/admin/tenant/settings/members/{member_id}",
        headers=headers,
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"

    resp = client.get("/admin", headers=headers, follow_redirects=False)
    assert resp.headers["location"] == "/admin/tenant/register"


def test_owner_deletes_team(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        owner = make_user(db, email="owner@example.com")
        tenant = make_tenant(db, name="Acme", owner=owner)
        tenant_id = tenant.id
    headers = _login(client, "owner@example.com")

    resp = client.delete("/admin/tenant/settings", headers=headers, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"

    with SessionLocal() as db:
        assert db.get(Tenant, tenant_id) is None
        assert db.query(Membership).count() == 0


def test_settings_without_tenant_redirects_to_root(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        make_user(db, email="new@example.com")
    headers = _login(client, "new@example.com")

    resp = client.get("/admin/tenant/settings", headers=headers, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"


def test_responses_carry_request_id(tmp_path):
    client, _SessionLocal = _client(tmp_path)
    resp = client.get("/metrics", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-Id"] == "req-123"
    assert "tenant_resolutions_total" in resp.text


def test_responses_name_the_resolved_tenant(tmp_path):
    client, SessionLocal = _client(tmp_path)
    with SessionLocal() as db:
        user = make_user(db, email="owner@example.com")
        make_tenant(db, name="Alpha", owner=user)
        beta = make_tenant(db, name="Beta", owner=user)
        beta_id = beta.id
    headers = _login(client, "owner@example.com")

    resp = client.get("/admin/beta", headers=headers)
    assert resp.headers["X-Panel"] == "admin"
    assert resp.headers["X-Tenant-Id"] == str(beta_id)

    resp = client.get("/metrics")
    assert "X-Panel" not in resp.headers
    assert "X-Tenant-Id" not in resp.headers
