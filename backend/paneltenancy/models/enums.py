from enum import Enum

# Stored as strings with DB check constraints (native enums disabled for easier evolution).


class RoleEnum(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"


# Roles an owner can hand out through invites and role changes.
ASSIGNABLE_ROLES = (RoleEnum.ADMIN, RoleEnum.EDITOR, RoleEnum.MEMBER)

ROLE_DESCRIPTIONS = {
    RoleEnum.ADMIN: ("Administrator", "Administrators can perform any action."),
    RoleEnum.EDITOR: ("Editor", "Editors can create, read, and update resources."),
    RoleEnum.MEMBER: ("Member", "Members can read resources."),
}
