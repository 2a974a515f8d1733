"""Invitation lifecycle: issue, accept, amend, cancel and clean up."""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookkeeper.config import settings
from bookkeeper.core.exceptions import (
    ConflictException,
    ForbiddenException,
    GoneException,
    InternalException,
    NotFoundException,
    ValidationException,
)
from bookkeeper.core.permissions import Permission, can_assign_role
from bookkeeper.models.audit_event import AuditEvent
from bookkeeper.models.audit_log import AuditAction
from bookkeeper.models.base import utcnow
from bookkeeper.models.invitation import Invitation
from bookkeeper.models.membership import Membership
from bookkeeper.models.organization_context import OrganizationContext
from bookkeeper.models.role import OrganizationRole
from bookkeeper.models.user import User
from bookkeeper.repositories.invitation_repository import InvitationRepository
from bookkeeper.repositories.membership_repository import MembershipRepository
from bookkeeper.repositories.user_repository import UserRepository
from bookkeeper.services.audit_recorder import AuditLogRecorder
from bookkeeper.services.invitation_notifier import InvitationNotifier, get_default_notifier
from bookkeeper.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

# No 0/O or 1/I so codes survive being read aloud or retyped
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_invitation_code(length: int | None = None) -> str:
    """Random invitation code from CODE_ALPHABET"""
    length = length or settings.INVITATION_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def acceptance_rate(accepted: int, total: int) -> int:
    """Accepted share of total as a whole percent, rounded half up"""
    if total == 0:
        return 0
    return (accepted * 200 + total) // (total * 2)


class InvitationService:
    """Service layer for invitation business logic"""

    def __init__(
        self,
        db: Session,
        recorder: AuditLogRecorder | None = None,
        notifier: InvitationNotifier | None = None,
    ):
        self.db = db
        self.invitation_repo = InvitationRepository(db)
        self.membership_repo = MembershipRepository(db)
        self.user_repo = UserRepository(db)
        self.recorder = recorder or AuditLogRecorder(db)
        self.notifier = notifier or get_default_notifier()
        self.memberships = MembershipService(db, self.recorder)

    def _get_or_404(self, invitation_id: int) -> Invitation:
        invitation = self.invitation_repo.get_by_id(invitation_id)
        if not invitation:
            raise NotFoundException("Invitation not found")
        return invitation

    def _require_inviter(self, user: User, organization_id: int) -> OrganizationContext:
        return self.memberships.require_permission(
            user,
            organization_id,
            Permission.INVITE_USERS,
            "Only admins and owners can manage invitations",
        )

    def _check_grantable(self, context: OrganizationContext, role: OrganizationRole) -> None:
        if not can_assign_role(context.role, role):
            raise ForbiddenException("Only the owner can invite administrators")

    def create(
        self, organization_id: int, email: str, role: OrganizationRole, user: User
    ) -> Invitation:
        """
        Issue an invitation and hand it to the notifier.

        Args:
            organization_id: Organization to invite into
            email: Invitee email
            role: Role the invitation grants (admin or member)
            user: Acting user

        Returns:
            Created invitation

        Raises:
            ForbiddenException: If the actor may not invite, or may not grant role
            ConflictException: If the email already belongs to a member or has
                a pending invitation
            InternalException: If no unique code could be generated
        """
        context = self._require_inviter(user, organization_id)
        self._check_grantable(context, role)

        email = email.strip().lower()
        now = utcnow()

        for candidate in self.user_repo.get_by_email(email):
            if self.membership_repo.get_membership(candidate.id, organization_id):
                raise ConflictException("User is already a member of this organization")

        if self.invitation_repo.get_pending_for_email(organization_id, email, now):
            raise ConflictException("A pending invitation already exists for this email")

        invitation = self._insert_with_unique_code(
            organization_id=organization_id,
            email=email,
            role=role,
            expires_at=now + timedelta(days=settings.INVITATION_EXPIRY_DAYS),
            created_by=user.id,
        )
        logger.info(
            "Invitation %s created for organization %s by user %s",
            invitation.id,
            organization_id,
            user.id,
        )

        self.recorder.record(
            AuditEvent(
                organization_id=organization_id,
                user_id=user.id,
                action=AuditAction.INVITE_SENT,
                table_name="invitations",
                record_id=invitation.id,
                new_values=invitation.snapshot(),
            )
        )
        self._notify(invitation, context)
        return invitation

    def _insert_with_unique_code(self, **fields) -> Invitation:
        max_attempts = settings.INVITATION_CODE_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            code = generate_invitation_code()
            try:
                return self.invitation_repo.create(Invitation(code=code, **fields))
            except IntegrityError:
                self.db.rollback()
                if not self.invitation_repo.code_exists(code):
                    raise
                logger.warning("Invitation code collision on attempt %s, regenerating", attempt)

        logger.error("Could not generate a unique invitation code after %s attempts", max_attempts)
        raise InternalException("Failed to generate a unique invitation code")

    def _notify(self, invitation: Invitation, context: OrganizationContext) -> None:
        try:
            self.notifier.send_invitation(invitation, context.organization)
        except Exception:
            logger.exception("Failed to deliver invitation %s", invitation.id)

    def get(self, invitation_id: int, user: User) -> Invitation:
        """Get one invitation (admin or owner of its organization)"""
        invitation = self._get_or_404(invitation_id)
        self._require_inviter(user, invitation.organization_id)
        return invitation

    def list_for_organization(self, organization_id: int, user: User) -> list[Invitation]:
        """List an organization's invitations, newest first"""
        self._require_inviter(user, organization_id)
        return self.invitation_repo.get_by_organization(organization_id)

    def get_details(self, code: str) -> Invitation:
        """
        Public lookup of an invitation by code.

        Raises:
            NotFoundException: If no invitation carries the code
        """
        invitation = self.invitation_repo.get_by_code(code.strip().upper())
        if not invitation:
            raise NotFoundException("Invitation not found")
        return invitation

    def accept(self, code: str, user: User) -> tuple[Invitation, Membership, bool]:
        """
        Redeem an invitation for the acting user.

        The invitation is claimed with a conditional update and the
        membership is inserted in the same transaction, so two concurrent
        accepts of one code produce exactly one membership.

        Args:
            code: Invitation code
            user: Acting user, whose email must match the invitation

        Returns:
            (invitation, membership, membership_created)

        Raises:
            NotFoundException: Unknown code
            ConflictException: Already used, or lost a concurrent claim
            GoneException: Expired
            ValidationException: Acting user has no email on record
            ForbiddenException: Email mismatch
        """
        now = utcnow()
        invitation = self.get_details(code)

        if invitation.is_used:
            raise ConflictException("Invitation has already been used")
        if invitation.is_expired(now):
            raise GoneException("Invitation has expired")
        if not user.email:
            raise ValidationException("Your account has no email address to match the invitation")
        if user.email.strip().lower() != invitation.email.lower():
            raise ForbiddenException("This invitation was issued to a different email address")

        organization_id = invitation.organization_id
        try:
            if not self.invitation_repo.claim(invitation.id, now):
                self.db.rollback()
                raise ConflictException("Invitation has already been used")

            membership = self.membership_repo.get_membership(user.id, organization_id)
            created = membership is None
            if created:
                membership = self.membership_repo.create_no_commit(
                    Membership(
                        organization_id=organization_id,
                        user_id=user.id,
                        role=invitation.role,
                    )
                )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictException("Invitation has already been used")

        self.db.refresh(invitation)
        self.db.refresh(membership)
        logger.info(
            "User %s accepted invitation %s for organization %s",
            user.id,
            invitation.id,
            organization_id,
        )

        if created:
            self.recorder.record(
                AuditEvent(
                    organization_id=organization_id,
                    user_id=user.id,
                    action=AuditAction.CREATE,
                    table_name="memberships",
                    record_id=membership.id,
                    new_values=membership.snapshot(),
                )
            )
        self.recorder.record(
            AuditEvent(
                organization_id=organization_id,
                user_id=user.id,
                action=AuditAction.UPDATE,
                table_name="invitations",
                record_id=invitation.id,
                old_values={"used_at": None},
                new_values={"used_at": invitation.used_at.isoformat()},
            )
        )
        return invitation, membership, created

    def update(self, invitation_id: int, role: OrganizationRole, user: User) -> Invitation:
        """
        Change the role a pending invitation grants.

        Raises:
            NotFoundException: Unknown invitation
            ForbiddenException: Actor may not manage invitations or grant role
            ConflictException: Invitation already used
        """
        invitation = self._get_or_404(invitation_id)
        context = self._require_inviter(user, invitation.organization_id)

        if invitation.is_used:
            raise ConflictException("Cannot modify an invitation that has already been used")
        self._check_grantable(context, role)

        old_values = invitation.snapshot()
        invitation.role = role
        invitation = self.invitation_repo.update(invitation)

        self.recorder.record(
            AuditEvent(
                organization_id=invitation.organization_id,
                user_id=user.id,
                action=AuditAction.UPDATE,
                table_name="invitations",
                record_id=invitation.id,
                old_values=old_values,
                new_values=invitation.snapshot(),
            )
        )
        return invitation

    def cancel(self, invitation_id: int, user: User) -> None:
        """
        Delete a pending invitation.

        Raises:
            NotFoundException: Unknown invitation
            ForbiddenException: Actor may not manage invitations
            ConflictException: Invitation already used
        """
        invitation = self._get_or_404(invitation_id)
        self._require_inviter(user, invitation.organization_id)

        if invitation.is_used:
            raise ConflictException("Cannot cancel an invitation that has already been used")

        old_values = invitation.snapshot()
        organization_id, record_id = invitation.organization_id, invitation.id
        self.invitation_repo.delete(invitation)

        self.recorder.record(
            AuditEvent(
                organization_id=organization_id,
                user_id=user.id,
                action=AuditAction.DELETE,
                table_name="invitations",
                record_id=record_id,
                old_values=old_values,
            )
        )

    def cleanup(self, days_old: int | None = None) -> int:
        """
        Delete unused invitations that expired more than days_old days ago.

        Used invitations are kept as acceptance history. One system audit
        event is recorded per affected organization.

        Returns:
            Number of deleted invitations
        """
        days_old = days_old or settings.INVITATION_CLEANUP_DAYS
        cutoff = utcnow() - timedelta(days=days_old)

        per_organization = self.invitation_repo.count_expired_unused_by_organization(cutoff)
        deleted = self.invitation_repo.delete_expired_unused(cutoff)
        logger.info("Invitation cleanup removed %s rows older than %s days", deleted, days_old)

        for organization_id, count in per_organization.items():
            self.recorder.record(
                AuditEvent(
                    organization_id=organization_id,
                    action=AuditAction.DELETE,
                    table_name="invitations",
                    old_values={"cleanup_cutoff": cutoff.isoformat(), "deleted_count": count},
                )
            )
        return deleted

    def stats(self, organization_id: int | None = None, now: datetime | None = None) -> dict:
        """Invitation counts by derived status, globally or for one organization"""
        counts = self.invitation_repo.count_by_status(now or utcnow(), organization_id)
        counts["acceptance_rate"] = acceptance_rate(counts["accepted"], counts["total"])
        return counts

    def stats_for_organization(self, organization_id: int, user: User) -> dict:
        """Invitation statistics for an organization the actor administers"""
        self._require_inviter(user, organization_id)
        return self.stats(organization_id)
