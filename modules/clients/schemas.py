from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class QuoteStatus(str, Enum):
    OPEN = "open"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ClientCreate(BaseModel):
    company_name: str = Field(..., min_length=1, description="Nome do cliente/empresa")
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document_number: Optional[str] = Field(None, description="CPF/CNPJ")


class ClientStatusUpdate(BaseModel):
    quote_status: QuoteStatus


class ClientRead(BaseModel):
    id: int
    company_name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document_number: Optional[str] = None
    quote_status: QuoteStatus
    created_at: datetime
    cancellation_deadline: datetime
    deadline_passed: bool
