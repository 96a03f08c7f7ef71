from .auth import User, Role, UserRole, Permission, RolePermission, UserPermission, SessionToken
from .campaigns import Campaign, CampaignMedia
from .donations import Donation, Transaction, DonationReceipt
from .documents import DocumentSequence
from .security import SecurityEvent

__all__ = [
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'UserPermission', 'SessionToken',
    'Campaign', 'CampaignMedia',
    'Donation', 'Transaction', 'DonationReceipt',
    'DocumentSequence',
    'SecurityEvent',
]
