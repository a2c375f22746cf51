from typing import Optional

from pydantic import BaseModel, Field


class QuoteNumberAssign(BaseModel):
    number: Optional[int] = Field(None, gt=0, le=99999, description="Número manual; vazio usa o próximo da sequência")


class NextQuoteNumberRead(BaseModel):
    year: int
    sequence: int
    quote_number: str
    format: str


class QuoteNumberRead(BaseModel):
    order_id: int
    year: int
    sequence: int
    quote_number: str
