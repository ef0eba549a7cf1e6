"""
Sales data for contacts, read through the external sales API.

Nothing here raises to the caller on a downstream problem: every failure
degrades to the default "New" summary or an empty list.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.contacts.repository import ContactRepository
from crm_contacts.sales.client import SalesApiClient, SalesApiError
from crm_contacts.sales.schemas import CustomerSalesSummary, SaleRecord, SalesCustomer, TopCustomer
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

# (minimum lifetime total, value, category), highest band first
CUSTOMER_TIERS: tuple[tuple[Decimal, int, str], ...] = (
    (Decimal("10000"), 5, "VIP"),
    (Decimal("5000"), 4, "Premium"),
    (Decimal("2000"), 3, "Frequent"),
    (Decimal("500"), 2, "Regular"),
)
DEFAULT_TIER = (1, "New")

DOWNSTREAM_ERRORS = (httpx.HTTPError, SalesApiError, PydanticValidationError, ValueError)


def classify_customer(total: Decimal) -> tuple[int, str]:
    """Map a lifetime purchase total to ``(value, category)``."""
    for threshold, value, category in CUSTOMER_TIERS:
        if total >= threshold:
            return value, category
    return DEFAULT_TIER


def summarize_sales(sales: Sequence[SaleRecord], customer_id: int | None) -> CustomerSalesSummary:
    total = sum((s.total for s in sales), Decimal("0"))
    dates = [s.date for s in sales if s.date is not None]
    value, category = classify_customer(total)
    return CustomerSalesSummary(
        total_sales=total,
        sale_count=len(sales),
        last_sale_at=max(dates) if dates else None,
        customer_value=value,
        customer_category=category,
        customer_id=customer_id,
    )


def _first_customer(payload: Any) -> SalesCustomer | None:
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if not payload:
        return None
    return SalesCustomer.model_validate(payload)


class SalesService:
    """Cross-references local contacts with downstream sales customers."""

    def __init__(
        self,
        session: AsyncSession,
        client: SalesApiClient,
        contact_repository: ContactRepository | None = None,
    ) -> None:
        self._client = client
        self._contacts = contact_repository or ContactRepository(session)

    async def _find_customer_id(self, national_id: str | None, email: str | None) -> int | None:
        """Look the customer up by DPI, then by email."""
        lookups = (("dpi", national_id), ("email", email))
        for key, value in lookups:
            if not value:
                continue
            customer = _first_customer(await self._client.get_json("/Clientes/buscar", params={key: value}))
            if customer is not None:
                return customer.id
        return None

    async def _fetch_sales(self, customer_id: int) -> list[SaleRecord] | None:
        payload = await self._client.get_json(f"/Ventas/cliente/{customer_id}")
        if payload is None:
            return None
        return [SaleRecord.model_validate(item) for item in payload or []]

    async def sales_for_contact(self, contact_id: int) -> CustomerSalesSummary:
        customer_id: int | None = None
        try:
            contact = await self._contacts.get_by_id(contact_id)
            if contact is None:
                return CustomerSalesSummary()

            customer_id = await self._find_customer_id(contact.national_id, contact.email)
            if customer_id is None:
                return CustomerSalesSummary()

            sales = await self._fetch_sales(customer_id)
            if sales is None:
                return CustomerSalesSummary(customer_id=customer_id)
            summary = summarize_sales(sales, customer_id)
        except DOWNSTREAM_ERRORS as e:
            logger.warning(
                "Sales lookup failed, returning default summary",
                extra={"contact_id": contact_id, "error": str(e), "error_type": type(e).__name__},
            )
            return CustomerSalesSummary(customer_id=customer_id)

        logger.info(
            "Sales summary computed",
            extra={
                "contact_id": contact_id,
                "customer_id": customer_id,
                "sale_count": summary.sale_count,
                "customer_value": summary.customer_value,
            },
        )
        return summary

    async def top_customers(self, limit: int = 10) -> list[TopCustomer]:
        try:
            payload = await self._client.get_json("/Ventas/top-clientes", params={"limit": limit})
            return [TopCustomer.model_validate(item) for item in payload or []]
        except DOWNSTREAM_ERRORS as e:
            logger.warning("Top customers lookup failed", extra={"error": str(e)})
            return []

    async def sales_history(self, customer_id: int) -> list[SaleRecord]:
        try:
            return await self._fetch_sales(customer_id) or []
        except DOWNSTREAM_ERRORS as e:
            logger.warning(
                "Sales history lookup failed",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            return []
