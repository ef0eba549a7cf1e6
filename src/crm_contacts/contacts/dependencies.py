"""FastAPI dependencies wiring contact services."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.contacts.excel_import import BulkImportService
from crm_contacts.contacts.service import ContactService
from crm_contacts.contacts.verification import VerificationService
from crm_contacts.notifications.email import EmailGateway, EmailProvider, get_email_provider
from crm_contacts.shared.database import get_db_session


def get_contact_service(session: AsyncSession = Depends(get_db_session)) -> ContactService:
    return ContactService(session=session)


def get_email_gateway(provider: EmailProvider = Depends(get_email_provider)) -> EmailGateway:
    return EmailGateway(provider=provider)


def get_verification_service(
    session: AsyncSession = Depends(get_db_session),
    email_gateway: EmailGateway = Depends(get_email_gateway),
) -> VerificationService:
    return VerificationService(session=session, email_gateway=email_gateway)


def get_bulk_import_service(
    verification_service: VerificationService = Depends(get_verification_service),
) -> BulkImportService:
    return BulkImportService(verification_service=verification_service)
