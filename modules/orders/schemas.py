from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from modules.orders.types import OrderStatus


class OrderLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class OrderLineRead(OrderLineCreate):
    id: int
    product_name: str


class ExtraItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    value: Decimal = Field(..., ge=0)


class ExtraItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    value: Optional[Decimal] = Field(None, ge=0)


class ExtraItemRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    value: float


class TaxCreate(BaseModel):
    tax_type: str = Field(..., min_length=1, description="Tipo de imposto (ICMS, ISS, ...)")
    percent: Decimal = Field(..., ge=0, lt=100)


class TaxUpdate(BaseModel):
    tax_type: Optional[str] = Field(None, min_length=1)
    percent: Optional[Decimal] = Field(None, ge=0, lt=100)


class TaxRead(BaseModel):
    id: int
    position: int
    tax_type: str
    percent: float


class OrderCreate(BaseModel):
    client_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    lines: List[OrderLineCreate] = Field(default_factory=list)
    extra_items: List[ExtraItemCreate] = Field(default_factory=list)
    taxes: List[TaxCreate] = Field(default_factory=list)
    has_freight: bool = False
    freight_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class FreightUpdate(BaseModel):
    freight_amount: Decimal = Field(..., ge=0)


class StatusHistoryRead(BaseModel):
    from_status: Optional[str] = None
    to_status: str
    changed_by: str
    changed_at: datetime


class OrderRead(BaseModel):
    id: int
    user_id: str
    client_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[int] = None
    status: OrderStatus
    has_freight: bool
    freight_amount: float
    notes: Optional[str] = None
    quote_number: Optional[str] = None
    lines: List[OrderLineRead] = Field(default_factory=list)
    extra_items: List[ExtraItemRead] = Field(default_factory=list)
    taxes: List[TaxRead] = Field(default_factory=list)
    status_history: List[StatusHistoryRead] = Field(default_factory=list)
