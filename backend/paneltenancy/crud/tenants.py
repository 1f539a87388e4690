from sqlalchemy.orm import Session

from paneltenancy.core.utils.slug import ensure_unique_slug, slugify
from paneltenancy.models.enums import RoleEnum
from paneltenancy.models.memberships import Membership
from paneltenancy.models.tenants import Tenant


def create_tenant(
    db: Session,
    name: str,
    slug: str | None = None,
    *,
    model=Tenant,
    slug_attribute: str = "slug",
    owner_id: int | None = None,
) -> Tenant:
    base_slug = slug or slugify(name)
    tenant = model(name=name, owner_id=owner_id)
    if slug_attribute != "id":
        setattr(tenant, slug_attribute, ensure_unique_slug(db, model, base_slug, attribute=slug_attribute))
    db.add(tenant)
    db.flush()
    return tenant


def create_tenant_with_owner(
    db: Session,
    *,
    name: str,
    slug: str | None,
    owner_user,
    model=Tenant,
    slug_attribute: str = "slug",
) -> tuple[Tenant, Membership]:
    tenant = create_tenant(
        db,
        name,
        slug,
        model=model,
        slug_attribute=slug_attribute,
        owner_id=owner_user.id,
    )
    membership = Membership(tenant_id=tenant.id, user_id=owner_user.id, role=RoleEnum.OWNER)
    db.add(membership)
    db.flush()
    return tenant, membership


def get_tenant_by_id(db: Session, tenant_id, *, model=Tenant) -> Tenant | None:
    try:
        key = int(tenant_id)
    except (TypeError, ValueError):
        return None
    return db.get(model, key)


def get_tenant_by_slug(db: Session, slug: str, *, model=Tenant, slug_attribute: str = "slug") -> Tenant | None:
    return db.query(model).filter(getattr(model, slug_attribute) == slug).first()


def find_tenant(db: Session, hint, *, model=Tenant, slug_attribute: str = "slug") -> Tenant | None:
    """Look a tenant up by its URL slug, falling back to the numeric id."""
    if hint is None:
        return None
    value = str(hint).strip()
    if not value:
        return None
    tenant = None
    if slug_attribute != "id":
        tenant = get_tenant_by_slug(db, value, model=model, slug_attribute=slug_attribute)
    if tenant is None and value.isdigit():
        tenant = get_tenant_by_id(db, value, model=model)
    return tenant


def rename_tenant(db: Session, tenant: Tenant, name: str) -> Tenant:
    tenant.name = name
    db.flush()
    return tenant


def delete_tenant(db: Session, tenant: Tenant) -> None:
    # Memberships and row-scoped records go with ON DELETE CASCADE.
    db.delete(tenant)
    db.flush()
