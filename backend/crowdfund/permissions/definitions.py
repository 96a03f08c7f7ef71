# Overview: All permission definitions organized by category.
# Each permission is defined as: (name, description, category)

from .categories import PermissionCategory


MANAGE_CAMPAIGNS = "manage campaigns"
MANAGE_DONATIONS = "manage donations"
VIEW_DONATIONS = "view donations"
MANAGE_USERS = "manage users"


# -- CAMPAIGNS --

CAMPAIGN_PERMISSIONS = [
    (
        MANAGE_CAMPAIGNS,
        "View, edit and delete any campaign; approve and reject campaigns",
        PermissionCategory.CAMPAIGNS,
    ),
]


# -- DONATIONS --

DONATION_PERMISSIONS = [
    (
        MANAGE_DONATIONS,
        "Create, edit, refund and delete any donation; record transactions",
        PermissionCategory.DONATIONS,
    ),
    (
        VIEW_DONATIONS,
        "View every donation regardless of visibility",
        PermissionCategory.DONATIONS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        MANAGE_USERS,
        "Manage user accounts",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    CAMPAIGN_PERMISSIONS
    + DONATION_PERMISSIONS
    + USER_PERMISSIONS
)
