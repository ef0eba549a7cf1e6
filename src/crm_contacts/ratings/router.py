"""
Rating API routes, nested under contacts.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUser
from crm_contacts.auth.rbac import require_sales_manager, require_seller
from crm_contacts.ratings.schemas import ContactProfileResponse, RatingCreate, RatingResponse
from crm_contacts.ratings.service import DEFAULT_HISTORY_LIMIT, RatingService
from crm_contacts.shared.database import get_db_session
from crm_contacts.shared.exceptions import NotFoundError

router = APIRouter(prefix="/contacts", tags=["ratings"])


def get_rating_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> RatingService:
    return RatingService(session=session)


RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]


@router.post(
    "/{contact_id}/ratings",
    response_model=RatingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_rating(
    contact_id: int,
    data: RatingCreate,
    service: RatingServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_seller)],
) -> RatingResponse:
    rating = await service.create_rating(contact_id, data, user_id=current_user.id)
    return RatingResponse.model_validate(rating)


@router.get("/{contact_id}/ratings", response_model=list[RatingResponse])
async def list_ratings(
    contact_id: int,
    service: RatingServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_seller)],
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_HISTORY_LIMIT,
) -> list[RatingResponse]:
    ratings = await service.history(contact_id, limit)
    return [RatingResponse.model_validate(r) for r in ratings]


@router.delete("/{contact_id}/ratings/{rating_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rating(
    contact_id: int,
    rating_id: int,
    service: RatingServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_sales_manager)],
) -> Response:
    if not await service.delete_rating(contact_id, rating_id):
        raise NotFoundError(f"Rating {rating_id} not found", details={"rating_id": rating_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{contact_id}/profile", response_model=ContactProfileResponse)
async def get_profile(
    contact_id: int,
    service: RatingServiceDep,
    current_user: Annotated[CurrentUser, Depends(require_seller)],
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_HISTORY_LIMIT,
) -> ContactProfileResponse:
    return await service.profile(contact_id, limit)
