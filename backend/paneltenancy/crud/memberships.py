from sqlalchemy.orm import Session

from paneltenancy.models.enums import RoleEnum
from paneltenancy.models.memberships import Membership
from paneltenancy.models.users import User


def _normalize_role(role: RoleEnum | str) -> RoleEnum:
    if isinstance(role, RoleEnum):
        return role
    try:
        return RoleEnum(role)
    except ValueError as exc:
        raise ValueError("Invalid role.") from exc


def get_membership(db: Session, tenant_id: int, user_id: int) -> Membership | None:
    return (
        db.query(Membership)
        .filter(Membership.tenant_id == tenant_id, Membership.user_id == user_id)
        .first()
    )


def create_membership(db: Session, tenant_id: int, user_id: int, role: RoleEnum | str) -> Membership:
    membership = Membership(tenant_id=tenant_id, user_id=user_id, role=_normalize_role(role))
    db.add(membership)
    db.flush()
    return membership


def list_members(db: Session, tenant_id: int) -> list[tuple[Membership, User]]:
    return (
        db.query(Membership, User)
        .join(User, User.id == Membership.user_id)
        .filter(Membership.tenant_id == tenant_id)
        .order_by(Membership.id.asc())
        .all()
    )


def update_membership_role(db: Session, membership: Membership, role: RoleEnum | str) -> Membership:
    membership.role = _normalize_role(role)
    db.flush()
    return membership


def remove_membership(db: Session, membership: Membership) -> None:
    db.delete(membership)
    db.flush()
