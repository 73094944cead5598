# accounts/authz.py
"""
Authorization utilities for Ledgerworks.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request

Fine-grained permissions are out of scope: any active member of an
organization may post to its ledger.
"""

from dataclasses import dataclass

from django.http import Http404
from rest_framework.exceptions import NotAuthenticated

from accounts.models import Organization


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + organization).

    This is passed to commands to provide context about who is performing
    an action and in which organization.

    Attributes:
        user: The authenticated user (recorded as created_by / voided_by)
        organization: The active organization (tenant)
    """
    user: object  # User model
    organization: Organization

    @property
    def organization_id(self) -> int:
        return self.organization.id

    @property
    def recorded_user(self):
        """User for audit columns; None for anonymous or system actors."""
        return self.user if getattr(self.user, "is_authenticated", False) else None


def resolve_actor(request, org_slug: str) -> ActorContext:
    """
    Extract ActorContext from the current request.

    The organization and membership are loaded fresh from the database on
    every call.

    Raises:
        NotAuthenticated: If user is not authenticated
        Http404: If the organization does not exist, is inactive, or the
            user is not a member (foreign tenants look the same as missing ones)
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    try:
        organization = Organization.objects.get(slug=org_slug, is_active=True)
    except Organization.DoesNotExist:
        raise Http404("Organization not found.")

    if not organization.members.filter(pk=user.pk).exists():
        raise Http404("Organization not found.")

    return ActorContext(user=user, organization=organization)
