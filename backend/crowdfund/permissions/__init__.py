# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    MANAGE_CAMPAIGNS,
    MANAGE_DONATIONS,
    VIEW_DONATIONS,
    MANAGE_USERS,
    PERMISSION_DEFINITIONS,
    CAMPAIGN_PERMISSIONS,
    DONATION_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, DEFAULT_ROLE_DESCRIPTIONS

__all__ = [
    "PermissionCategory",
    "MANAGE_CAMPAIGNS",
    "MANAGE_DONATIONS",
    "VIEW_DONATIONS",
    "MANAGE_USERS",
    "PERMISSION_DEFINITIONS",
    "CAMPAIGN_PERMISSIONS",
    "DONATION_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "DEFAULT_ROLE_DESCRIPTIONS",
]
