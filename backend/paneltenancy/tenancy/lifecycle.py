"""
Tenant lifecycle: create, switch, list, settings and membership management.

Every mutating operation either commits as a whole or rolls back and
raises a TenancyError carrying the field the error belongs to.
"""

from functools import wraps
import logging
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from paneltenancy.core.metrics import TENANT_LIFECYCLE_TOTAL
from paneltenancy.core.utils.slug import is_alpha_dash
from paneltenancy.crud.memberships import (
    create_membership,
    get_membership,
    list_members,
    remove_membership,
    update_membership_role,
)
from paneltenancy.crud.tenants import (
    create_tenant_with_owner,
    delete_tenant,
    get_tenant_by_id,
    rename_tenant,
)
from paneltenancy.crud.users import get_user_by_email
from paneltenancy.models.enums import ASSIGNABLE_ROLES, ROLE_DESCRIPTIONS, RoleEnum
from paneltenancy.tenancy.context import TenantContext
from paneltenancy.tenancy.contracts import HasTenantAvatar, HasTenantName, TenantAware
from paneltenancy.tenancy.errors import (
    TenancyError,
    TenantAccessDenied,
    TenantNotFound,
    TenantValidationError,
)
from paneltenancy.tenancy.resolver import can_access
from paneltenancy.tenancy.session_store import SessionStore

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


def _lifecycle_operation(name: str):
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                result = func(self, *args, **kwargs)
                self.db.commit()
            except TenancyError as exc:
                self.db.rollback()
                TENANT_LIFECYCLE_TOTAL.labels(operation=name, outcome="rejected").inc()
                logger.info(
                    "tenant.%s.rejected",
                    name,
                    extra={"panel": self.panel.id, "error": type(exc).__name__, "field": exc.field},
                )
                raise
            except Exception:
                self.db.rollback()
                TENANT_LIFECYCLE_TOTAL.labels(operation=name, outcome="failed").inc()
                raise
            TENANT_LIFECYCLE_TOTAL.labels(operation=name, outcome="ok").inc()
            logger.info("tenant.%s", name, extra={"panel": self.panel.id, "tenant_id": self.ctx.tenant_id})
            return result

        return wrapper

    return decorator


def _clean_name(name: Optional[str]) -> str:
    value = (name or "").strip()
    if not value:
        raise TenantValidationError("The name field is required.", field="name")
    if len(value) > MAX_NAME_LENGTH:
        raise TenantValidationError("The name may not be greater than 255 characters.", field="name")
    return value


def _clean_slug(slug: Optional[str]) -> Optional[str]:
    if slug is None:
        return None
    value = slug.strip()
    if not value:
        return None
    if len(value) > MAX_NAME_LENGTH or not is_alpha_dash(value):
        raise TenantValidationError(
            "The slug may only contain letters, numbers, dashes and underscores.",
            field="slug",
        )
    return value


def _clean_role(role) -> RoleEnum:
    try:
        normalized = role if isinstance(role, RoleEnum) else RoleEnum(str(role).strip().lower())
    except ValueError as exc:
        raise TenantValidationError("The selected role is invalid.", field="role") from exc
    if normalized not in ASSIGNABLE_ROLES:
        raise TenantValidationError("The selected role is invalid.", field="role")
    return normalized


def _clean_email(email: Optional[str]) -> str:
    try:
        return validate_email(email or "", check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise TenantValidationError("The email must be a valid email address.", field="email") from exc


class TenantLifecycle:
    def __init__(self, ctx: TenantContext, db: Session, session_store: SessionStore):
        self.ctx = ctx
        self.db = db
        self.session_store = session_store

    @property
    def panel(self):
        return self.ctx.panel

    @property
    def user(self):
        return self.ctx.user

    @property
    def pointer_key(self) -> str:
        return self.panel.session_tenant_key

    # Presentation helpers

    def summarize(self, tenant) -> dict:
        name = tenant.get_tenant_name() if isinstance(tenant, HasTenantName) else tenant.name
        avatar = tenant.get_tenant_avatar_url() if isinstance(tenant, HasTenantAvatar) else None
        return {
            "id": tenant.id,
            "name": name,
            "slug": self.panel.tenancy.get_tenant_slug(tenant),
            "avatar": avatar,
        }

    def list_tenants(self) -> dict:
        if not self.panel.has_tenancy() or not isinstance(self.user, TenantAware):
            return {"tenants": [], "current": None}
        current = self.ctx.tenant
        items = []
        for tenant in self.user.get_tenants(self.panel):
            item = self.summarize(tenant)
            item["url"] = self.panel.get_tenant_url(tenant)
            item["is_current"] = current is not None and current.id == tenant.id
            items.append(item)
        return {
            "tenants": items,
            "current": self.summarize(current) if current is not None else None,
        }

    # Ownership

    def is_owner(self, tenant=None, user=None) -> bool:
        tenant = tenant if tenant is not None else self.ctx.tenant
        user = user if user is not None else self.user
        if tenant is None or user is None:
            return False
        owner_id = getattr(tenant, "owner_id", None)
        if owner_id is not None:
            return owner_id == user.id
        membership = get_membership(self.db, tenant.id, user.id)
        return membership is not None and membership.role == RoleEnum.OWNER

    def _is_owner_member(self, tenant, member_id: int) -> bool:
        owner_id = getattr(tenant, "owner_id", None)
        if owner_id is not None:
            return owner_id == member_id
        membership = get_membership(self.db, tenant.id, member_id)
        return membership is not None and membership.role == RoleEnum.OWNER

    def _require_tenant(self):
        if self.ctx.tenant is None:
            raise TenantNotFound("No team selected.", field="team")
        return self.ctx.tenant

    def _require_owner(self, message: str):
        tenant = self._require_tenant()
        if not self.is_owner(tenant):
            raise TenantAccessDenied(message, field="team")
        return tenant

    def _activate(self, tenant, *, source: str) -> None:
        self.session_store.put(self.pointer_key, tenant.id)
        self.ctx.set_tenant(tenant, source=source)

    def _deactivate(self, tenant) -> None:
        self.session_store.forget(self.pointer_key)
        self.ctx.clear()
        if getattr(self.user, "current_tenant_id", None) == tenant.id:
            self.user.current_tenant_id = None

    # Operations

    @_lifecycle_operation("create")
    def create_tenant(self, name: Optional[str], slug: Optional[str] = None):
        if not self.panel.has_tenancy():
            raise TenancyError("Tenancy is not enabled for this panel.")
        if self.user is None:
            raise TenantAccessDenied("You must be signed in to create a team.")
        clean_name = _clean_name(name)
        clean_slug = _clean_slug(slug)
        tenant, _membership = create_tenant_with_owner(
            self.db,
            name=clean_name,
            slug=clean_slug,
            owner_user=self.user,
            model=self.panel.tenancy.get_tenant_model(),
            slug_attribute=self.panel.tenancy.get_slug_attribute(),
        )
        if hasattr(self.user, "current_tenant_id"):
            self.user.current_tenant_id = tenant.id
        self.db.flush()
        if self.panel.mode.is_connection:
            # Creating the endpoint's schema is an external step; we only invoke it.
            self.panel.connections.provision(tenant)
        self._activate(tenant, source="created")
        return tenant

    @_lifecycle_operation("switch")
    def switch_tenant(self, tenant_id):
        if not self.panel.has_tenancy():
            raise TenancyError("Tenancy is not enabled for this panel.")
        if not isinstance(self.user, TenantAware):
            raise TenantAccessDenied("User does not support tenancy.")
        tenant = get_tenant_by_id(self.db, tenant_id, model=self.panel.tenancy.get_tenant_model())
        if tenant is None:
            raise TenantNotFound("Tenant not found.")
        if not can_access(self.user, tenant):
            raise TenantAccessDenied("You do not have access to this tenant.")
        self._activate(tenant, source="switch")
        return tenant

    def settings_view(self) -> dict:
        tenant = self._require_tenant()
        is_owner = self.is_owner(tenant)
        members = []
        for membership, member in list_members(self.db, tenant.id):
            members.append(
                {
                    "id": member.id,
                    "name": member.name,
                    "email": member.email,
                    "role": membership.role.value if membership.role else RoleEnum.MEMBER.value,
                    "is_owner": self._is_owner_member(tenant, member.id),
                }
            )
        return {
            "panel": {"id": self.panel.id, "path": self.panel.path},
            "team": {
                "id": tenant.id,
                "name": tenant.name,
                "slug": self.panel.tenancy.get_tenant_slug(tenant),
                "owner_id": getattr(tenant, "owner_id", None),
            },
            "members": members,
            "is_owner": is_owner,
            "available_roles": [
                {"key": role.value, "name": label, "description": description}
                for role, (label, description) in ROLE_DESCRIPTIONS.items()
            ],
            "permissions": {
                "can_update_team": is_owner,
                "can_delete_team": is_owner,
                "can_add_team_members": is_owner,
                "can_remove_team_members": is_owner,
            },
        }

    @_lifecycle_operation("rename")
    def rename_tenant(self, name: Optional[str]):
        tenant = self._require_owner("You are not authorized to update this team.")
        return rename_tenant(self.db, tenant, _clean_name(name))

    @_lifecycle_operation("invite")
    def invite_member(self, email: Optional[str], role):
        tenant = self._require_owner("You are not authorized to invite members.")
        clean_email = _clean_email(email)
        clean_role = _clean_role(role)
        invited = get_user_by_email(self.db, clean_email)
        if invited is None:
            raise TenantNotFound("No user found with this email address.", field="email")
        if get_membership(self.db, tenant.id, invited.id) is not None:
            raise TenantValidationError("This user is already a member of this team.", field="email")
        return create_membership(self.db, tenant.id, invited.id, clean_role)

    @_lifecycle_operation("update_role")
    def update_member_role(self, member_id: int, role):
        tenant = self._require_owner("You are not authorized to update member roles.")
        clean_role = _clean_role(role)
        membership = get_membership(self.db, tenant.id, member_id)
        if membership is None:
            raise TenantNotFound("Team member not found.", field="member")
        if self._is_owner_member(tenant, member_id):
            raise TenantValidationError("The team owner's role cannot be changed.", field="role")
        return update_membership_role(self.db, membership, clean_role)

    @_lifecycle_operation("remove_member")
    def remove_member(self, member_id: int) -> bool:
        """Returns True when the caller removed themself."""
        tenant = self._require_tenant()
        removing_self = self.user is not None and member_id == self.user.id
        if not removing_self and not self.is_owner(tenant):
            raise TenantAccessDenied("You can only remove yourself from the team.", field="team")
        if self._is_owner_member(tenant, member_id):
            raise TenantAccessDenied("Cannot remove the team owner.", field="team")
        membership = get_membership(self.db, tenant.id, member_id)
        if membership is None:
            raise TenantNotFound("Team member not found.", field="member")
        remove_membership(self.db, membership)
        if removing_self:
            self._deactivate(tenant)
        return removing_self

    @_lifecycle_operation("delete")
    def delete_tenant(self) -> None:
        tenant = self._require_owner("You are not authorized to delete this team.")
        tenant_id = tenant.id
        self._deactivate(tenant)
        delete_tenant(self.db, tenant)
        if self.panel.mode.is_connection and self.panel.connections is not None:
            self.panel.connections.forget(tenant_id)
