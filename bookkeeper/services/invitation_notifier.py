"""Delivery of invitation links to invitees."""

import logging
from urllib.parse import urlencode

import httpx

from bookkeeper.config import settings
from bookkeeper.models.invitation import Invitation
from bookkeeper.models.organization import Organization

logger = logging.getLogger(__name__)


def build_accept_url(code: str) -> str:
    """Link the invitee follows to accept"""
    return f"{settings.INVITATION_ACCEPT_URL}?{urlencode({'code': code})}"


class InvitationNotifier:
    """Delivers an invitation to its email address"""

    def send_invitation(self, invitation: Invitation, organization: Organization) -> None:
        raise NotImplementedError


class LoggingInvitationNotifier(InvitationNotifier):
    """Writes the invitation link to the log (no delivery channel configured)"""

    def send_invitation(self, invitation: Invitation, organization: Organization) -> None:
        logger.info(
            "Invitation %s for %s to join '%s' as %s: %s",
            invitation.id,
            invitation.email,
            organization.name,
            invitation.role.value,
            build_accept_url(invitation.code),
        )


class WebhookInvitationNotifier(InvitationNotifier):
    """
    Posts invitations to a mail-delivery webhook.

    Raises httpx errors on transport failures and non-2xx responses; the
    invitation service decides what a failure means.
    """

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.Client | None = None):
        self.url = url
        self.timeout = timeout
        self.client = client

    def build_payload(self, invitation: Invitation, organization: Organization) -> dict:
        return {
            "event": "invitation.created",
            "email": invitation.email,
            "role": invitation.role.value,
            "organization": {"id": organization.id, "name": organization.name},
            "accept_url": build_accept_url(invitation.code),
            "expires_at": invitation.expires_at.isoformat(),
        }

    def send_invitation(self, invitation: Invitation, organization: Organization) -> None:
        payload = self.build_payload(invitation, organization)
        if self.client is not None:
            response = self.client.post(self.url, json=payload, timeout=self.timeout)
        else:
            response = httpx.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.info("Delivered invitation %s to webhook", invitation.id)


def get_default_notifier() -> InvitationNotifier:
    """Webhook delivery when configured, log-only otherwise"""
    if settings.INVITATION_WEBHOOK_URL:
        return WebhookInvitationNotifier(
            settings.INVITATION_WEBHOOK_URL, timeout=settings.INVITATION_WEBHOOK_TIMEOUT
        )
    return LoggingInvitationNotifier()
