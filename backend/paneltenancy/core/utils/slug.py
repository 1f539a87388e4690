import re
from sqlalchemy.orm import Session

from paneltenancy.tenancy.constants import RESERVED_TENANT_SLUGS

_ALPHA_DASH_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def slugify(name: str) -> str:
    slug = name.strip().lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug or "tenant"


def is_alpha_dash(value: str) -> bool:
    return bool(_ALPHA_DASH_RE.fullmatch(value))


def ensure_unique_slug(
    db: Session,
    model,
    base_slug: str,
    *,
    attribute: str = "slug",
) -> str:
    """Append -1, -2, ... to base_slug until no row of model uses it."""
    column = getattr(model, attribute)
    slug = base_slug
    suffix = 1
    while True:
        taken = slug in RESERVED_TENANT_SLUGS
        if not taken:
            taken = db.query(model).filter(column == slug).first() is not None
        if not taken:
            return slug
        slug = f"{base_slug}-{suffix}"
        suffix += 1
