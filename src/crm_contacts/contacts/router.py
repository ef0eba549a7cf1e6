"""
Contact API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status

from crm_contacts.auth.middleware import CurrentUser
from crm_contacts.auth.rbac import require_sales_manager, require_seller
from crm_contacts.contacts.dependencies import (
    get_bulk_import_service,
    get_contact_service,
    get_verification_service,
)
from crm_contacts.contacts.excel_import import BulkImportService
from crm_contacts.contacts.schemas import (
    ContactCreate,
    ContactCreatedResponse,
    ContactResponse,
    ContactUpdate,
    ImportResultResponse,
)
from crm_contacts.contacts.service import ContactService
from crm_contacts.contacts.verification import VerificationService
from crm_contacts.shared.exceptions import NotFoundError, ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])

ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
SellerDep = Annotated[CurrentUser, Depends(require_seller)]
ManagerDep = Annotated[CurrentUser, Depends(require_sales_manager)]

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")


def _to_responses(contacts) -> list[ContactResponse]:
    return [ContactResponse.model_validate(c) for c in contacts]


@router.get("", response_model=list[ContactResponse], summary="List contacts")
async def list_contacts(
    service: ContactServiceDep,
    current_user: SellerDep,
    include_inactive: Annotated[bool, Query()] = False,
) -> list[ContactResponse]:
    return _to_responses(await service.list_contacts(include_inactive=include_inactive))


@router.get("/search", response_model=list[ContactResponse], summary="Search contacts")
async def search_contacts(
    service: ContactServiceDep,
    current_user: SellerDep,
    q: Annotated[str, Query(min_length=1, description="Name, email, phone, DPI or NIT fragment")],
    include_inactive: Annotated[bool, Query()] = False,
) -> list[ContactResponse]:
    return _to_responses(await service.search(q, include_inactive=include_inactive))


@router.get("/category/{category}", response_model=list[ContactResponse])
async def list_by_category(
    category: str,
    service: ContactServiceDep,
    current_user: SellerDep,
    include_inactive: Annotated[bool, Query()] = False,
) -> list[ContactResponse]:
    return _to_responses(await service.list_by_category(category, include_inactive))


@router.get("/municipality/{municipality}", response_model=list[ContactResponse])
async def list_by_municipality(
    municipality: str,
    service: ContactServiceDep,
    current_user: SellerDep,
    include_inactive: Annotated[bool, Query()] = False,
) -> list[ContactResponse]:
    return _to_responses(await service.list_by_municipality(municipality, include_inactive))


@router.get("/national-id/{national_id}", response_model=ContactResponse)
async def get_by_national_id(
    national_id: str,
    service: ContactServiceDep,
    current_user: SellerDep,
) -> ContactResponse:
    return ContactResponse.model_validate(await service.get_by_national_id(national_id))


@router.post(
    "/import",
    response_model=ImportResultResponse,
    summary="Import contacts from Excel",
    description="Positional 14-column sheet, header on row 1. Each row is created independently.",
)
async def import_contacts(
    file: Annotated[UploadFile, File(description="Excel workbook (.xlsx)")],
    service: Annotated[BulkImportService, Depends(get_bulk_import_service)],
    current_user: ManagerDep,
) -> ImportResultResponse:
    filename = (file.filename or "").lower()
    if not filename.endswith(EXCEL_EXTENSIONS):
        raise ValidationError("Only .xlsx workbooks are accepted", details={"filename": file.filename})

    logger.info(
        "Contact import started",
        extra={"user_id": current_user.id, "filename": file.filename},
    )
    content = await file.read()
    result = await service.import_contacts(content, user_id=current_user.id)
    return ImportResultResponse(
        total_rows=result.total_rows,
        success_count=result.success_count,
        error_count=result.error_count,
        errors=result.errors,
    )


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: int,
    service: ContactServiceDep,
    current_user: SellerDep,
) -> ContactResponse:
    return ContactResponse.model_validate(await service.get_contact(contact_id))


@router.post(
    "",
    response_model=ContactCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create contact",
    description="Contacts with an email start inactive until the emailed link is confirmed.",
)
async def create_contact(
    data: ContactCreate,
    service: Annotated[VerificationService, Depends(get_verification_service)],
    current_user: ManagerDep,
) -> ContactCreatedResponse:
    result = await service.create_contact(data, user_id=current_user.id)
    response = ContactCreatedResponse.model_validate(result.contact)
    response.verification_email_sent = result.email_sent
    return response


@router.put("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    service: ContactServiceDep,
    current_user: ManagerDep,
) -> Response:
    await service.update_contact(contact_id, data, user_id=current_user.id)
    await service.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _set_active(service: ContactService, contact_id: int, active: bool, user_id: int) -> Response:
    if not await service.set_active(contact_id, active, user_id=user_id):
        raise NotFoundError(f"Contact {contact_id} not found", details={"contact_id": contact_id})
    await service.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Soft-delete contact")
async def delete_contact(
    contact_id: int,
    service: ContactServiceDep,
    current_user: ManagerDep,
) -> Response:
    return await _set_active(service, contact_id, False, current_user.id)


@router.patch("/{contact_id}/activate", status_code=status.HTTP_204_NO_CONTENT)
async def activate_contact(
    contact_id: int,
    service: ContactServiceDep,
    current_user: ManagerDep,
) -> Response:
    return await _set_active(service, contact_id, True, current_user.id)


@router.patch("/{contact_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_contact(
    contact_id: int,
    service: ContactServiceDep,
    current_user: ManagerDep,
) -> Response:
    return await _set_active(service, contact_id, False, current_user.id)
