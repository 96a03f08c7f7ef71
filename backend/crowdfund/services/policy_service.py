# Overview: Central authorization policy table for campaigns, donations and user administration.

"""
Authorization Policy Table

WHY: Every allow/deny decision goes through one evaluation function driven
by an explicit table, instead of conditionals scattered across routes.

MODEL:
- An Actor is (id, is_admin, effective permission names).
- Each action lists the permissions that make an actor "privileged" for it.
  is_admin is privileged for every action.
- Each action has one or more PolicyRules. A rule names the relation the
  actor must have to the resource (privileged / owner / any) and an
  optional condition on the resource state. The action is allowed when
  ANY of its rules matches.

An action with no privileged rule (donation.create) binds admins too:
donations are only ever accepted for approved campaigns.

SECURITY: Denials are logged as PERMISSION_DENIED security events and
raised as ForbiddenError before any mutation happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from flask import has_request_context, request

from ..errors import ForbiddenError
from ..models import Campaign, Donation, User
from ..permissions import MANAGE_CAMPAIGNS, MANAGE_DONATIONS, MANAGE_USERS, VIEW_DONATIONS
from . import permission_service


# -- Actions --

CAMPAIGN_LIST_ALL = "campaign.list_all"
CAMPAIGN_CREATE = "campaign.create"
CAMPAIGN_VIEW = "campaign.view"
CAMPAIGN_UPDATE = "campaign.update"
CAMPAIGN_DELETE = "campaign.delete"
CAMPAIGN_MODERATE = "campaign.moderate"
CAMPAIGN_STATISTICS = "campaign.statistics"
CAMPAIGN_MEDIA_VIEW = "campaign.media.view"
CAMPAIGN_MEDIA_MANAGE = "campaign.media.manage"

DONATION_LIST_ALL = "donation.list_all"
DONATION_CREATE = "donation.create"
DONATION_VIEW = "donation.view"
DONATION_UPDATE = "donation.update"
DONATION_DELETE = "donation.delete"
DONATION_MANAGE = "donation.manage"

TRANSACTION_LIST_ALL = "transaction.list_all"

USER_MANAGE = "user.manage"
PERMISSION_MANAGE = "permission.manage"


# Permissions that make an actor privileged for an action (is_admin always is).
ACTION_PERMISSIONS: dict[str, tuple[str, ...]] = {
    CAMPAIGN_LIST_ALL: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_CREATE: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_VIEW: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_UPDATE: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_DELETE: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_MODERATE: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_STATISTICS: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_MEDIA_VIEW: (MANAGE_CAMPAIGNS,),
    CAMPAIGN_MEDIA_MANAGE: (MANAGE_CAMPAIGNS,),
    DONATION_LIST_ALL: (MANAGE_DONATIONS, VIEW_DONATIONS),
    DONATION_CREATE: (),
    DONATION_VIEW: (MANAGE_DONATIONS, VIEW_DONATIONS),
    DONATION_UPDATE: (MANAGE_DONATIONS,),
    DONATION_DELETE: (MANAGE_DONATIONS,),
    DONATION_MANAGE: (MANAGE_DONATIONS,),
    TRANSACTION_LIST_ALL: (MANAGE_DONATIONS,),
    USER_MANAGE: (MANAGE_USERS,),
    PERMISSION_MANAGE: (),
}


# -- Relations --

PRIVILEGED = "privileged"
OWNER = "owner"
ANY = "any"


@dataclass(frozen=True)
class Actor:
    """The authenticated user as seen by the policy table."""
    id: int
    is_admin: bool
    permissions: frozenset[str]

    @classmethod
    def for_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            is_admin=bool(user.is_admin),
            permissions=frozenset(permission_service.get_user_permissions(user.id)),
        )

    def is_privileged_for(self, action: str) -> bool:
        if self.is_admin:
            return True
        return any(p in self.permissions for p in ACTION_PERMISSIONS.get(action, ()))


@dataclass(frozen=True)
class PolicyRule:
    action: str
    relation: str
    condition: Callable[[Any], bool] | None = None

    def matches(self, actor: Actor, resource: Any) -> bool:
        if self.relation == PRIVILEGED:
            related = actor.is_privileged_for(self.action)
        elif self.relation == OWNER:
            related = resource is not None and owner_id(resource) == actor.id
        else:
            related = True

        if not related:
            return False
        if self.condition is None:
            return True
        return resource is not None and self.condition(resource)


def owner_id(resource: Any) -> int | None:
    if isinstance(resource, Campaign):
        return resource.creator_id
    if isinstance(resource, Donation):
        return resource.donor_id
    return None


def _campaign_approved(campaign: Campaign) -> bool:
    return campaign.status == Campaign.STATUS_APPROVED


def _campaign_not_approved(campaign: Campaign) -> bool:
    return campaign.status != Campaign.STATUS_APPROVED


def _donation_public(donation: Donation) -> bool:
    return donation.visibility == Donation.VISIBILITY_PUBLIC


def _donation_pending(donation: Donation) -> bool:
    return donation.status == Donation.STATUS_PENDING


POLICY_TABLE: tuple[PolicyRule, ...] = (
    # Campaigns
    PolicyRule(CAMPAIGN_LIST_ALL, PRIVILEGED),
    PolicyRule(CAMPAIGN_CREATE, ANY),
    PolicyRule(CAMPAIGN_VIEW, PRIVILEGED),
    PolicyRule(CAMPAIGN_VIEW, OWNER),
    PolicyRule(CAMPAIGN_VIEW, ANY, _campaign_approved),
    PolicyRule(CAMPAIGN_UPDATE, PRIVILEGED),
    PolicyRule(CAMPAIGN_UPDATE, OWNER, _campaign_not_approved),
    PolicyRule(CAMPAIGN_DELETE, PRIVILEGED),
    PolicyRule(CAMPAIGN_DELETE, OWNER, _campaign_not_approved),
    PolicyRule(CAMPAIGN_MODERATE, PRIVILEGED),
    PolicyRule(CAMPAIGN_STATISTICS, PRIVILEGED),
    PolicyRule(CAMPAIGN_MEDIA_VIEW, PRIVILEGED),
    PolicyRule(CAMPAIGN_MEDIA_VIEW, OWNER),
    PolicyRule(CAMPAIGN_MEDIA_VIEW, ANY, _campaign_approved),
    PolicyRule(CAMPAIGN_MEDIA_MANAGE, PRIVILEGED),
    PolicyRule(CAMPAIGN_MEDIA_MANAGE, OWNER),
    # Donations
    PolicyRule(DONATION_LIST_ALL, PRIVILEGED),
    PolicyRule(DONATION_CREATE, ANY, _campaign_approved),
    PolicyRule(DONATION_VIEW, PRIVILEGED),
    PolicyRule(DONATION_VIEW, OWNER),
    PolicyRule(DONATION_VIEW, ANY, _donation_public),
    PolicyRule(DONATION_UPDATE, PRIVILEGED),
    PolicyRule(DONATION_UPDATE, OWNER, _donation_pending),
    PolicyRule(DONATION_DELETE, PRIVILEGED),
    PolicyRule(DONATION_MANAGE, PRIVILEGED),
    PolicyRule(TRANSACTION_LIST_ALL, PRIVILEGED),
    # Administration
    PolicyRule(USER_MANAGE, PRIVILEGED),
    PolicyRule(PERMISSION_MANAGE, PRIVILEGED),
)


DENIAL_MESSAGES = {
    CAMPAIGN_LIST_ALL: "You do not have permission to view all campaigns.",
    CAMPAIGN_CREATE: "You do not have permission to create campaigns.",
    CAMPAIGN_VIEW: "You cannot view this campaign.",
    CAMPAIGN_UPDATE: "You cannot update this campaign.",
    CAMPAIGN_DELETE: "You cannot delete this campaign.",
    CAMPAIGN_MODERATE: "You do not have permission to moderate campaigns.",
    CAMPAIGN_STATISTICS: "You do not have permission to view campaign statistics.",
    CAMPAIGN_MEDIA_VIEW: "You cannot view this campaign.",
    CAMPAIGN_MEDIA_MANAGE: "You do not have permission to manage media for this campaign.",
    DONATION_LIST_ALL: "You do not have permission to view all donations.",
    DONATION_CREATE: "You can only donate to approved campaigns.",
    DONATION_VIEW: "You do not have permission to view this donation.",
    DONATION_UPDATE: "You do not have permission to update this donation.",
    DONATION_DELETE: "You do not have permission to delete this donation.",
    DONATION_MANAGE: "You do not have permission to manage donations.",
    TRANSACTION_LIST_ALL: "You do not have permission to view transactions.",
    USER_MANAGE: "You do not have permission to manage users.",
    PERMISSION_MANAGE: "Only administrators can manage permissions.",
}


def _rules_for(action: str) -> list[PolicyRule]:
    return [rule for rule in POLICY_TABLE if rule.action == action]


def is_allowed(actor: Actor, action: str, resource: Any = None) -> bool:
    """Pure policy evaluation. Unknown actions are denied."""
    return any(rule.matches(actor, resource) for rule in _rules_for(action))


def authorize(actor: Actor, action: str, resource: Any = None, message: str | None = None) -> None:
    """
    Require that actor may perform action on resource.

    Raises ForbiddenError (after logging a PERMISSION_DENIED event) otherwise.
    """
    if is_allowed(actor, action, resource):
        return

    reason = message or DENIAL_MESSAGES.get(action, "This action is unauthorized.")

    path = None
    ip_address = None
    user_agent = None
    if has_request_context():
        path = request.path
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    permission_service.log_security_event(
        user_id=actor.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=path,
        action=action,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise ForbiddenError(reason)


# -- Named predicates --

def can_view_campaign(actor: Actor, campaign: Campaign) -> bool:
    return is_allowed(actor, CAMPAIGN_VIEW, campaign)


def can_modify_campaign(actor: Actor, campaign: Campaign) -> bool:
    return is_allowed(actor, CAMPAIGN_UPDATE, campaign)


def can_delete_campaign(actor: Actor, campaign: Campaign) -> bool:
    return is_allowed(actor, CAMPAIGN_DELETE, campaign)


def can_moderate(actor: Actor) -> bool:
    return is_allowed(actor, CAMPAIGN_MODERATE)


def can_view_donation(actor: Actor, donation: Donation) -> bool:
    return is_allowed(actor, DONATION_VIEW, donation)


def can_modify_donation(actor: Actor, donation: Donation) -> bool:
    return is_allowed(actor, DONATION_UPDATE, donation)


def can_delete_donation(actor: Actor, donation: Donation) -> bool:
    return is_allowed(actor, DONATION_DELETE, donation)


def can_donate_to(actor: Actor, campaign: Campaign) -> bool:
    return is_allowed(actor, DONATION_CREATE, campaign)
