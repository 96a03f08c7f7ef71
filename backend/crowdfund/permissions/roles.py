# Overview: Default role -> permission bundles created by `flask system init`.

from .definitions import MANAGE_CAMPAIGNS, MANAGE_DONATIONS, MANAGE_USERS, VIEW_DONATIONS


DEFAULT_ROLE_PERMISSIONS = {
    "moderator": [
        MANAGE_CAMPAIGNS,
        VIEW_DONATIONS,
    ],
    "finance": [
        MANAGE_DONATIONS,
        VIEW_DONATIONS,
    ],
    "support": [
        MANAGE_USERS,
        VIEW_DONATIONS,
    ],
}

DEFAULT_ROLE_DESCRIPTIONS = {
    "moderator": "Reviews and moderates campaigns",
    "finance": "Handles donations, transactions and refunds",
    "support": "Administers donor accounts",
}
