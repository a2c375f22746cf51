from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import get_current_user_id
from modules.orders import schemas, service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=schemas.OrderRead)
def create_order_endpoint(
    order_in: schemas.OrderCreate, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    return service.create_order(db, order_in, user_id)


@router.get("", response_model=list[schemas.OrderRead])
def list_orders_endpoint(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return service.list_orders(db, user_id)


@router.get("/{order_id}", response_model=schemas.OrderRead)
def get_order_endpoint(order_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return service.get_order(db, order_id, user_id)


@router.patch("/{order_id}/status", response_model=schemas.OrderRead)
def update_order_status_endpoint(
    order_id: int,
    status_in: schemas.OrderStatusUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.update_status(db, order_id, status_in, user_id)


@router.patch("/{order_id}/freight", response_model=schemas.OrderRead)
def update_freight_endpoint(
    order_id: int,
    freight_in: schemas.FreightUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.update_freight(db, order_id, freight_in, user_id)


@router.post("/{order_id}/lines", response_model=schemas.OrderRead)
def add_line_endpoint(
    order_id: int,
    line_in: schemas.OrderLineCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.add_line(db, order_id, line_in, user_id)


@router.delete("/{order_id}/lines/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_line_endpoint(
    order_id: int, line_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    service.remove_line(db, order_id, line_id, user_id)


@router.get("/{order_id}/extra-items", response_model=list[schemas.ExtraItemRead])
def list_extra_items_endpoint(
    order_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    return service.list_extra_items(db, order_id, user_id)


@router.post("/{order_id}/extra-items", response_model=schemas.ExtraItemRead)
def add_extra_item_endpoint(
    order_id: int,
    item_in: schemas.ExtraItemCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.add_extra_item(db, order_id, item_in, user_id)


@router.patch("/{order_id}/extra-items/{item_id}", response_model=schemas.ExtraItemRead)
def update_extra_item_endpoint(
    order_id: int,
    item_id: int,
    item_in: schemas.ExtraItemUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.update_extra_item(db, order_id, item_id, item_in, user_id)


@router.delete("/{order_id}/extra-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_extra_item_endpoint(
    order_id: int, item_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    service.remove_extra_item(db, order_id, item_id, user_id)


@router.get("/{order_id}/taxes", response_model=list[schemas.TaxRead])
def list_taxes_endpoint(order_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return service.list_taxes(db, order_id, user_id)


@router.post("/{order_id}/taxes", response_model=schemas.TaxRead)
def add_tax_endpoint(
    order_id: int,
    tax_in: schemas.TaxCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.add_tax(db, order_id, tax_in, user_id)


@router.patch("/{order_id}/taxes/{tax_id}", response_model=schemas.TaxRead)
def update_tax_endpoint(
    order_id: int,
    tax_id: int,
    tax_in: schemas.TaxUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.update_tax(db, order_id, tax_id, tax_in, user_id)


@router.delete("/{order_id}/taxes/{tax_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_tax_endpoint(
    order_id: int, tax_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    service.remove_tax(db, order_id, tax_id, user_id)
