from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from modules.costing import service

router = APIRouter(prefix="/costing", tags=["costing"])


@router.get("/products/{product_id}/cost")
def product_cost(product_id: int, fresh: bool = False, db: Session = Depends(get_db)):
    return service.get_product_cost(db, product_id, fresh=fresh)


@router.get("/products/{product_id}/cost-with-margin")
def product_cost_with_margin(product_id: int, fresh: bool = False, db: Session = Depends(get_db)):
    return service.get_product_cost_with_margin(db, product_id, fresh=fresh)


@router.post("/products/{product_id}/recalculate")
def recalculate_product_cost(product_id: int, db: Session = Depends(get_db)):
    return service.recalculate_product_cost(db, product_id)


@router.get("/products/{product_id}/raw-materials")
def raw_material_requirements(
    product_id: int,
    quantity: Decimal = Query(Decimal("1"), gt=0),
    db: Session = Depends(get_db),
):
    return service.get_raw_material_requirements(db, product_id, quantity)
