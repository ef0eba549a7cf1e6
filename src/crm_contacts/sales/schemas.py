"""
Sales API payloads.

Downstream JSON uses camelCase Spanish keys; they are accepted on input via
validation aliases while our responses keep the snake_case field names.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Downstream(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SalesCustomer(_Downstream):
    id: int = Field(validation_alias=AliasChoices("id", "Id"))
    name: str = Field(default="", validation_alias=AliasChoices("nombre", "Nombre", "name"))
    national_id: str | None = Field(default=None, validation_alias=AliasChoices("dpi", "Dpi", "national_id"))
    email: str | None = Field(default=None, validation_alias=AliasChoices("email", "Email"))


class SaleRecord(_Downstream):
    id: int = Field(validation_alias=AliasChoices("id", "Id"))
    sale_number: str = Field(
        default="",
        validation_alias=AliasChoices("numeroVenta", "NumeroVenta", "sale_number"),
    )
    total: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("total", "Total"))
    date: datetime | None = Field(default=None, validation_alias=AliasChoices("fecha", "Fecha", "date"))
    status: str = Field(default="", validation_alias=AliasChoices("estado", "Estado", "status"))


class TopCustomer(_Downstream):
    id: int = Field(validation_alias=AliasChoices("id", "Id"))
    name: str = Field(default="", validation_alias=AliasChoices("nombre", "Nombre", "name"))
    total_sales: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("totalVentas", "TotalVentas", "total_sales"),
    )


class CustomerSalesSummary(BaseModel):
    """Purchase summary and value tier of a contact's downstream customer."""

    total_sales: Decimal = Decimal("0")
    sale_count: int = 0
    last_sale_at: datetime | None = None
    customer_value: int = Field(default=1, ge=1, le=5)
    customer_category: str = "New"
    customer_id: int | None = None
