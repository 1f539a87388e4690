"""
Isolation mode selection for tenant-scoped data.
"""

from enum import Enum

# Stored and configured as strings; aliases keep older panel configs working.


class TenancyMode(str, Enum):
    ROW = "row"
    CONNECTION = "connection"

    @property
    def is_connection(self) -> bool:
        return self is TenancyMode.CONNECTION


_MODE_ALIASES = {
    "row": TenancyMode.ROW,
    "single": TenancyMode.ROW,
    "shared": TenancyMode.ROW,
    "connection": TenancyMode.CONNECTION,
    "multi": TenancyMode.CONNECTION,
    "database": TenancyMode.CONNECTION,
}


def parse_mode(value) -> TenancyMode:
    """Map a configured value onto a mode. Anything unknown or empty is row-scoped."""
    if isinstance(value, TenancyMode):
        return value
    if not value:
        return TenancyMode.ROW
    return _MODE_ALIASES.get(str(value).strip().lower(), TenancyMode.ROW)


def select_mode(panel) -> TenancyMode:
    tenancy = getattr(panel, "tenancy", None)
    if tenancy is None:
        return TenancyMode.ROW
    return parse_mode(tenancy.mode)
