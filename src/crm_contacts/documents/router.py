"""
Document API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUser
from crm_contacts.auth.rbac import require_sales_manager, require_seller
from crm_contacts.documents.schemas import DocumentResponse
from crm_contacts.documents.service import DocumentService
from crm_contacts.shared.database import get_db_session
from crm_contacts.shared.exceptions import NotFoundError

router = APIRouter(prefix="/documents", tags=["documents"])


def get_document_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DocumentService:
    return DocumentService(session=session)


DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
SellerDep = Annotated[CurrentUser, Depends(require_seller)]


@router.post(
    "/contacts/{contact_id}",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    contact_id: int,
    service: DocumentServiceDep,
    current_user: SellerDep,
    file: Annotated[UploadFile | None, File(description="Document to attach")] = None,
    description: Annotated[str | None, Form(max_length=500)] = None,
) -> DocumentResponse:
    document = await service.upload(
        contact_id,
        source=file.file if file is not None else None,
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        uploaded_by=current_user.username,
        description=description,
    )
    return DocumentResponse.model_validate(document)


@router.get("/contacts/{contact_id}", response_model=list[DocumentResponse])
async def list_documents(
    contact_id: int,
    service: DocumentServiceDep,
    current_user: SellerDep,
) -> list[DocumentResponse]:
    return [DocumentResponse.model_validate(d) for d in await service.list_for_contact(contact_id)]


@router.get("/{document_id}/download", response_class=FileResponse)
async def download_document(
    document_id: int,
    service: DocumentServiceDep,
    current_user: SellerDep,
) -> FileResponse:
    document = await service.get_for_download(document_id)
    return FileResponse(
        path=document.storage_path,
        media_type=document.content_type,
        filename=document.original_filename,
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    service: DocumentServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_sales_manager)],
) -> Response:
    if not await service.delete(document_id, deleted_by=current_user.username):
        raise NotFoundError(f"Document {document_id} not found", details={"document_id": document_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
