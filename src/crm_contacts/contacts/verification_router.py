"""
Verification endpoints.

The verify and report-error links are opened from the email by the contact
itself, so they are anonymous and answer with HTML pages.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from crm_contacts.auth.middleware import CurrentUser
from crm_contacts.auth.rbac import require_sales_manager
from crm_contacts.contacts.dependencies import get_verification_service
from crm_contacts.contacts.schemas import ContactUpdate, VerificationDispatchResponse
from crm_contacts.contacts.verification import (
    DispatchResult,
    VerificationOutcome,
    VerificationResult,
    VerificationService,
)
from crm_contacts.notifications.templates import TemplateRenderer, get_template_renderer

router = APIRouter(prefix="/contacts", tags=["verification"])

PAGE_TEMPLATE = "verification_page.html"

# outcome -> (status, variant, heading, message)
CONFIRM_PAGES: dict[VerificationOutcome, tuple[int, str, str, str]] = {
    VerificationOutcome.VERIFIED: (
        200, "success", "Verification complete",
        "Thank you {name}, your information has been confirmed and your profile is now active.",
    ),
    VerificationOutcome.ALREADY_VERIFIED: (
        200, "info", "Already verified",
        "This contact was already verified. No further action is needed.",
    ),
    VerificationOutcome.INVALID_TOKEN: (
        400, "error", "Invalid link",
        "This verification link is not valid. It may have been replaced by a newer one.",
    ),
    VerificationOutcome.EXPIRED: (
        400, "warning", "Link expired",
        "This verification link has expired. Please ask for a new one.",
    ),
    VerificationOutcome.NOT_FOUND: (
        404, "error", "Contact not found",
        "We could not find the contact this link refers to.",
    ),
}

REPORT_PAGES: dict[VerificationOutcome, tuple[int, str, str, str]] = {
    **CONFIRM_PAGES,
    VerificationOutcome.REPORTED: (
        200, "warning", "Thanks for letting us know",
        "We have marked your information as incorrect. Our team will contact you to correct it.",
    ),
}

VerificationServiceDep = Annotated[VerificationService, Depends(get_verification_service)]
RendererDep = Annotated[TemplateRenderer, Depends(get_template_renderer)]


def render_outcome(
    renderer: TemplateRenderer,
    result: VerificationResult,
    pages: dict[VerificationOutcome, tuple[int, str, str, str]],
) -> HTMLResponse:
    status_code, variant, heading, message = pages[result.outcome]
    name = result.contact.full_name if result.contact is not None else ""
    body = renderer.render(
        PAGE_TEMPLATE,
        {
            "title": heading,
            "heading": heading,
            "message": message.format(name=name),
            "variant": variant,
        },
    )
    return HTMLResponse(content=body, status_code=status_code)


def _dispatch_response(result: DispatchResult, action: str) -> VerificationDispatchResponse:
    contact = result.contact
    if result.email_sent is None:
        message = f"Contact {action}; no email address on file"
    elif result.email_sent:
        message = f"Contact {action}; verification email sent"
    else:
        message = f"Contact {action}; verification email could not be delivered"
    return VerificationDispatchResponse(
        contact_id=contact.id,
        email=contact.email,
        email_sent=bool(result.email_sent),
        verification_sent_at=contact.verification_sent_at,
        message=message,
    )


@router.get("/{contact_id}/verify/{token}", response_class=HTMLResponse)
async def verify_contact(
    contact_id: int,
    token: str,
    service: VerificationServiceDep,
    renderer: RendererDep,
) -> HTMLResponse:
    result = await service.confirm(contact_id, token)
    return render_outcome(renderer, result, CONFIRM_PAGES)


@router.get("/{contact_id}/report-error/{token}", response_class=HTMLResponse)
async def report_contact_error(
    contact_id: int,
    token: str,
    service: VerificationServiceDep,
    renderer: RendererDep,
) -> HTMLResponse:
    result = await service.report_error(contact_id, token)
    return render_outcome(renderer, result, REPORT_PAGES)


@router.post("/{contact_id}/resend-verification", response_model=VerificationDispatchResponse)
async def resend_verification(
    contact_id: int,
    service: VerificationServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_sales_manager)],
) -> VerificationDispatchResponse:
    result = await service.resend(contact_id, user_id=current_user.id)
    return _dispatch_response(result, "pending verification")


@router.put("/{contact_id}/correct", response_model=VerificationDispatchResponse)
async def correct_contact(
    contact_id: int,
    data: ContactUpdate,
    service: VerificationServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_sales_manager)],
) -> VerificationDispatchResponse:
    result = await service.correct_and_resend(contact_id, data, user_id=current_user.id)
    return _dispatch_response(result, "corrected")
