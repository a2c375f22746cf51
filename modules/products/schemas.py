from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modules.products.types import ProductKind


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, description="Nome do produto")
    description: Optional[str] = None
    kind: ProductKind = ProductKind.SIMPLE
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Preço unitário (produtos simples)")
    stock_quantity: Decimal = Field(Decimal("0"), ge=0)
    is_raw_material: bool = False
    margin_percent: Decimal = Field(Decimal("0"), ge=0, lt=100, description="Margem de lucro (%)")


class ProductCreate(ProductBase):
    @model_validator(mode="after")
    def check_simple_has_price(self):
        if self.kind == ProductKind.SIMPLE and self.unit_price is None:
            raise ValueError("Produto simples exige preço unitário")
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    kind: Optional[ProductKind] = None
    unit_price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[Decimal] = Field(None, ge=0)
    is_raw_material: Optional[bool] = None
    margin_percent: Optional[Decimal] = Field(None, ge=0, lt=100)


class CachedCostRead(BaseModel):
    total: Optional[float] = None
    materials_subtotal: Optional[float] = None
    processes_subtotal: Optional[float] = None
    labor_subtotal: Optional[float] = None
    computed_at: Optional[datetime] = None


class ProductRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    kind: ProductKind
    unit_price: Optional[float] = None
    stock_quantity: float
    is_raw_material: bool
    margin_percent: float
    cached_cost: CachedCostRead


class DependencyCreate(BaseModel):
    child_id: int
    quantity_required: Decimal = Field(..., gt=0, description="Quantidade necessária")


class DependencyRead(BaseModel):
    id: int
    parent_id: int
    child_id: int
    child_name: str
    quantity_required: float


class CircularCheckRequest(BaseModel):
    child_id: int


class CircularCheckRead(BaseModel):
    has_cycle: bool
    message: str


class ProcessCreate(BaseModel):
    name: str = Field(..., min_length=1)
    price_per_unit: Decimal = Field(..., ge=0)
    estimated_minutes: int = Field(0, ge=0)


class ProcessUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price_per_unit: Optional[Decimal] = Field(None, ge=0)
    estimated_minutes: Optional[int] = Field(None, ge=0)


class ProcessRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price_per_unit: float
    estimated_minutes: int


class LaborCreate(BaseModel):
    labor_type: str = Field(..., min_length=1, description="Tipo (fabricação, desenho/projeto)")
    price_per_hour: Decimal = Field(..., ge=0)


class LaborUpdate(BaseModel):
    labor_type: Optional[str] = Field(None, min_length=1)
    price_per_hour: Optional[Decimal] = Field(None, ge=0)


class LaborRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    labor_type: str
    price_per_hour: float


class ProductProcessCreate(BaseModel):
    process_id: int
    quantity: Decimal = Field(..., gt=0)


class ProductProcessRead(BaseModel):
    id: int
    process_id: int
    name: str
    price_per_unit: float
    quantity: float


class ProductLaborCreate(BaseModel):
    labor_id: int
    hours: Decimal = Field(..., gt=0)


class ProductLaborRead(BaseModel):
    id: int
    labor_id: int
    labor_type: str
    price_per_hour: float
    hours: float


class WhereUsedRead(BaseModel):
    parent_id: int
    parent_name: str
    quantity_required: float


class ProductTreeNode(BaseModel):
    id: int
    name: str
    kind: ProductKind
    is_raw_material: bool
    unit_price: Optional[float] = None
    quantity_required: float
    level: int
    dependencies: List["ProductTreeNode"] = Field(default_factory=list)


ProductTreeNode.model_rebuild()


class ProductTreeRead(BaseModel):
    product: ProductTreeNode
