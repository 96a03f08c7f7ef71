# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and admin console display."""
    CAMPAIGNS = "CAMPAIGNS"
    DONATIONS = "DONATIONS"
    USERS = "USERS"
