"""
Sales proxy API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUserDep
from crm_contacts.sales.client import SalesApiClient, get_sales_client
from crm_contacts.sales.schemas import CustomerSalesSummary, SaleRecord, TopCustomer
from crm_contacts.sales.service import SalesService
from crm_contacts.shared.database import get_db_session

router = APIRouter(prefix="/sales", tags=["sales"])


def get_sales_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    client: Annotated[SalesApiClient, Depends(get_sales_client)],
) -> SalesService:
    return SalesService(session=session, client=client)


SalesServiceDep = Annotated[SalesService, Depends(get_sales_service)]


@router.get("/contacts/{contact_id}", response_model=CustomerSalesSummary)
async def contact_sales(
    contact_id: int,
    service: SalesServiceDep,
    current_user: CurrentUserDep,
) -> CustomerSalesSummary:
    return await service.sales_for_contact(contact_id)


@router.get("/top-customers", response_model=list[TopCustomer])
async def top_customers(
    service: SalesServiceDep,
    current_user: CurrentUserDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[TopCustomer]:
    return await service.top_customers(limit)


@router.get("/history/{customer_id}", response_model=list[SaleRecord])
async def sales_history(
    customer_id: int,
    service: SalesServiceDep,
    current_user: CurrentUserDep,
) -> list[SaleRecord]:
    return await service.sales_history(customer_id)
