"""
Email verification workflow for contacts.

A contact created or corrected with an email address starts inactive and
unverified, holding a single-use token that was mailed to it::

    Unverified & Inactive --issue--> Pending --confirm--> Verified & Active
                                        |
                                        +--report_error--> Reported (Inactive)

Confirm and report-error never mutate state when a precondition fails; they
return an outcome instead. Email delivery failures are reported as
``email_sent=False`` after the data change has been committed.
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.config import Settings, get_settings
from crm_contacts.contacts.models import Contact
from crm_contacts.contacts.schemas import ContactCreate, ContactUpdate
from crm_contacts.contacts.service import ContactService
from crm_contacts.notifications.email import EmailGateway
from crm_contacts.shared.database import as_utc, utcnow
from crm_contacts.shared.exceptions import ConflictError, ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

TOKEN_BYTES = 32


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    REPORTED = "reported"
    NOT_FOUND = "not_found"
    ALREADY_VERIFIED = "already_verified"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"


@dataclass
class VerificationResult:
    outcome: VerificationOutcome
    contact: Contact | None = None


@dataclass
class DispatchResult:
    """A contact after a mail-sending transition.

    ``email_sent`` is None when the contact has no email and nothing was sent.
    """

    contact: Contact
    email_sent: bool | None


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class VerificationService:
    """Issues, confirms and reports verification tokens."""

    def __init__(
        self,
        session: AsyncSession,
        email_gateway: EmailGateway,
        contact_service: ContactService | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._email = email_gateway
        self._contacts = contact_service or ContactService(session)
        self._settings = settings or get_settings()
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self._settings.verification_token_ttl_hours)

    def _issue_token(self, contact: Contact) -> None:
        contact.verification_token = generate_token()
        contact.verification_sent_at = self._clock()
        contact.verified_at = None
        contact.email_verified = False
        contact.active = False

    async def _commit_and_send(self, contact: Contact) -> DispatchResult:
        await self._session.commit()
        if not contact.email:
            return DispatchResult(contact=contact, email_sent=None)
        sent = await self._email.send_verification_email(contact)
        if not sent:
            logger.warning(
                "Verification email failed; contact change kept",
                extra={"contact_id": contact.id},
            )
        return DispatchResult(contact=contact, email_sent=sent)

    async def create_contact(self, data: ContactCreate, user_id: int | None = None) -> DispatchResult:
        """Create a contact and start verification when it has an email.

        Contacts without email are stored active and unverified.

        Raises:
            ConflictError: The national ID is already taken.
        """
        contact = await self._contacts.create_contact(data, user_id, active=not data.email)
        if contact.email:
            self._issue_token(contact)
            contact = await self._contacts.repository.save(contact)
            logger.info(
                "Verification issued",
                extra={"contact_id": contact.id, "reason": "created"},
            )
        return await self._commit_and_send(contact)

    async def confirm(self, contact_id: int, token: str) -> VerificationResult:
        contact = await self._contacts.repository.get_by_id(contact_id)
        if contact is None:
            return VerificationResult(VerificationOutcome.NOT_FOUND)
        if contact.email_verified:
            return VerificationResult(VerificationOutcome.ALREADY_VERIFIED, contact)
        if not self._token_matches(contact, token):
            logger.warning("Verification token mismatch", extra={"contact_id": contact_id})
            return VerificationResult(VerificationOutcome.INVALID_TOKEN, contact)

        now = self._clock()
        sent_at = contact.verification_sent_at
        if sent_at is None or as_utc(now) - as_utc(sent_at) > self.ttl:
            logger.info("Verification token expired", extra={"contact_id": contact_id})
            return VerificationResult(VerificationOutcome.EXPIRED, contact)

        contact.active = True
        contact.email_verified = True
        contact.verified_at = now
        contact.verification_token = None
        contact.updated_at = now
        contact = await self._contacts.repository.save(contact)
        await self._session.commit()

        logger.info("Contact verified", extra={"contact_id": contact_id})
        return VerificationResult(VerificationOutcome.VERIFIED, contact)

    async def report_error(self, contact_id: int, token: str) -> VerificationResult:
        """Mark the contact's data as reported incorrect.

        The token is kept and expiry is not checked.
        """
        contact = await self._contacts.repository.get_by_id(contact_id)
        if contact is None:
            return VerificationResult(VerificationOutcome.NOT_FOUND)
        if contact.email_verified:
            return VerificationResult(VerificationOutcome.ALREADY_VERIFIED, contact)
        if not self._token_matches(contact, token):
            logger.warning("Report-error token mismatch", extra={"contact_id": contact_id})
            return VerificationResult(VerificationOutcome.INVALID_TOKEN, contact)

        contact.active = False
        contact.email_verified = False
        contact.updated_at = self._clock()
        contact = await self._contacts.repository.save(contact)
        await self._session.commit()

        logger.info("Contact data reported incorrect", extra={"contact_id": contact_id})
        return VerificationResult(VerificationOutcome.REPORTED, contact)

    async def resend(self, contact_id: int, user_id: int | None = None) -> DispatchResult:
        """Issue a fresh token and mail it again.

        Raises:
            NotFoundError: Unknown contact.
            ConflictError: The contact is already verified.
            ValidationError: The contact has no email.
        """
        contact = await self._contacts.get_contact(contact_id)
        if contact.email_verified:
            raise ConflictError("Contact is already verified", details={"contact_id": contact_id})
        if not contact.email:
            raise ValidationError("Contact has no email address", details={"contact_id": contact_id})

        self._issue_token(contact)
        contact.updated_by = user_id
        contact.updated_at = self._clock()
        contact = await self._contacts.repository.save(contact)
        logger.info("Verification issued", extra={"contact_id": contact_id, "reason": "resend"})
        return await self._commit_and_send(contact)

    async def correct_and_resend(
        self,
        contact_id: int,
        data: ContactUpdate,
        user_id: int | None = None,
    ) -> DispatchResult:
        """Apply corrected data, then restart verification as on creation."""
        contact = await self._contacts.update_contact(contact_id, data, user_id)
        if contact.email:
            self._issue_token(contact)
        else:
            contact.verification_token = None
            contact.verification_sent_at = None
            contact.email_verified = False
            contact.active = True
        contact = await self._contacts.repository.save(contact)
        logger.info("Verification issued", extra={"contact_id": contact_id, "reason": "corrected"})
        return await self._commit_and_send(contact)

    @staticmethod
    def _token_matches(contact: Contact, token: str) -> bool:
        stored = contact.verification_token
        if not stored or not token:
            return False
        return secrets.compare_digest(stored.encode(), token.encode())
