"""
Outbound email delivery over an HTTPS provider API.

Delivery problems never raise: providers report success as a boolean so a
failed send cannot undo the data change that triggered it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import httpx

from crm_contacts.config import Settings, get_settings
from crm_contacts.notifications.templates import TemplateRenderer, get_template_renderer
from crm_contacts.shared.logging import get_logger

if TYPE_CHECKING:
    from crm_contacts.contacts.models import Contact

logger = get_logger(__name__)

VERIFICATION_SUBJECT = "Contact data verification - CRM Contacts"
VERIFICATION_TEMPLATE = "verification_email.html"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


class EmailProvider(Protocol):
    """Minimal provider contract used by the gateway."""

    async def send(self, message: EmailMessage) -> bool:  # pragma: no cover - interface
        ...


class HttpEmailProvider:
    """Provider posting ``{from, to, subject, html}`` JSON with a bearer key."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._settings.email_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if owned."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def send(self, message: EmailMessage) -> bool:
        payload = {
            "from": self._settings.email_from,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        headers = {"Authorization": f"Bearer {self._settings.email_api_key}"}

        try:
            response = await self._get_http_client().post(
                self._settings.email_api_url,
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(
                "Email delivery failed",
                extra={"to": message.to, "error": str(e), "error_type": type(e).__name__},
            )
            return False

        if response.is_success:
            logger.info("Email sent", extra={"to": message.to, "status_code": response.status_code})
            return True

        logger.error(
            "Email provider rejected message",
            extra={
                "to": message.to,
                "status_code": response.status_code,
                "response": response.text[:500],
            },
        )
        return False


class EmailGateway:
    """Builds verification messages for contacts and hands them to a provider."""

    def __init__(
        self,
        provider: EmailProvider,
        renderer: TemplateRenderer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._provider = provider
        self._renderer = renderer or get_template_renderer()
        self._settings = settings or get_settings()

    def _contact_url(self, contact: Contact, action: str) -> str:
        base = self._settings.public_base_url.rstrip("/")
        return f"{base}{self._settings.api_prefix}/contacts/{contact.id}/{action}/{contact.verification_token}"

    def verification_link(self, contact: Contact) -> str:
        return self._contact_url(contact, "verify")

    def report_error_link(self, contact: Contact) -> str:
        return self._contact_url(contact, "report-error")

    async def send_verification_email(self, contact: Contact) -> bool:
        """Send the verify / report-error message for a contact's current token.

        Returns:
            False when the contact has no email or token, or delivery failed.
        """
        if not contact.email or not contact.verification_token:
            logger.warning(
                "Verification email skipped",
                extra={"contact_id": contact.id, "has_email": bool(contact.email)},
            )
            return False

        body = self._renderer.render(
            VERIFICATION_TEMPLATE,
            {
                "full_name": contact.full_name,
                "first_name": contact.first_name,
                "last_name": contact.last_name,
                "email": contact.email,
                "phone": contact.phone,
                "national_id": contact.national_id,
                "tax_id": contact.tax_id,
                "address": contact.address,
                "zone": contact.zone,
                "municipality": contact.municipality,
                "department": contact.department,
                "category": contact.category,
                "subcategory": contact.subcategory,
                "verify_url": self.verification_link(contact),
                "report_error_url": self.report_error_link(contact),
                "ttl_hours": self._settings.verification_token_ttl_hours,
            },
        )
        sent = await self._provider.send(
            EmailMessage(to=contact.email, subject=VERIFICATION_SUBJECT, html=body)
        )
        logger.info(
            "Verification email dispatched" if sent else "Verification email not delivered",
            extra={"contact_id": contact.id, "email_sent": sent},
        )
        return sent


_provider: HttpEmailProvider | None = None


def get_email_provider() -> EmailProvider:
    """Process-wide HTTP email provider (FastAPI dependency)."""
    global _provider
    if _provider is None:
        _provider = HttpEmailProvider()
    return _provider


async def close_email_provider() -> None:
    global _provider
    if _provider is not None:
        await _provider.close()
        _provider = None
