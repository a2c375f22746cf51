import logging
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.errors import InvalidTransitionException, NotFoundException, ValidationAppException
from core.security import ensure_owner
from modules.clients.service import get_client_model
from modules.orders import models, schemas
from modules.orders.types import ALLOWED_TRANSITIONS, OrderStatus
from modules.products import models as product_models

logger = logging.getLogger(__name__)


def create_order(db: Session, order_in: schemas.OrderCreate, user_id: str) -> Dict[str, Any]:
    if order_in.product_id is not None and order_in.quantity is None:
        raise ValidationAppException("Informe a quantidade do produto principal")
    if not (order_in.product_id or order_in.lines or order_in.extra_items):
        raise ValidationAppException("O pedido precisa de ao menos um produto ou item extra")

    if order_in.client_id is not None:
        get_client_model(db, order_in.client_id)
    if order_in.product_id is not None:
        _get_product(db, order_in.product_id)

    order = models.Order(
        user_id=user_id,
        client_id=order_in.client_id,
        product_id=order_in.product_id,
        quantity=order_in.quantity,
        status=OrderStatus.PENDING.value,
        has_freight=order_in.has_freight,
        freight_amount=order_in.freight_amount,
        notes=order_in.notes,
    )
    for line in order_in.lines:
        product = _get_product(db, line.product_id)
        order.lines.append(models.OrderLine(product=product, quantity=line.quantity))
    for extra in order_in.extra_items:
        order.extra_items.append(models.OrderExtraItem(**extra.model_dump()))
    for position, tax in enumerate(order_in.taxes, start=1):
        order.taxes.append(models.OrderTax(position=position, tax_type=tax.tax_type, percent=tax.percent))
    order.status_history.append(
        models.OrderStatusHistory(from_status=None, to_status=OrderStatus.PENDING.value, changed_by=user_id)
    )

    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created order %s for user %s", order.id, user_id)
    return _serialize_order(order)


def list_orders(db: Session, user_id: str) -> List[Dict[str, Any]]:
    orders = db.query(models.Order).filter(models.Order.user_id == user_id).order_by(models.Order.id).all()
    return [_serialize_order(o) for o in orders]


def get_order(db: Session, order_id: int, user_id: str) -> Dict[str, Any]:
    return _serialize_order(get_owned_order(db, order_id, user_id))


def get_owned_order(db: Session, order_id: int, user_id: str) -> models.Order:
    order = db.query(models.Order).filter(models.Order.id == order_id).first()
    if not order:
        raise NotFoundException("Pedido não encontrado", context={"pedido_id": order_id})
    ensure_owner(order.user_id, user_id)
    return order


def update_status(db: Session, order_id: int, status_in: schemas.OrderStatusUpdate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    current = OrderStatus(order.status)
    target = status_in.status
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionException(current.value, target.value)
    order.status = target.value
    order.status_history.append(
        models.OrderStatusHistory(from_status=current.value, to_status=target.value, changed_by=user_id)
    )
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s by %s", order_id, current.value, target.value, user_id)
    return _serialize_order(order)


def update_freight(db: Session, order_id: int, freight_in: schemas.FreightUpdate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    order.freight_amount = freight_in.freight_amount
    order.has_freight = freight_in.freight_amount > 0
    db.commit()
    db.refresh(order)
    return _serialize_order(order)


def add_line(db: Session, order_id: int, line_in: schemas.OrderLineCreate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    product = _get_product(db, line_in.product_id)
    order.lines.append(models.OrderLine(product=product, quantity=line_in.quantity))
    db.commit()
    db.refresh(order)
    return _serialize_order(order)


def remove_line(db: Session, order_id: int, line_id: int, user_id: str) -> None:
    order = get_owned_order(db, order_id, user_id)
    line = _child(order.lines, line_id, "Item do pedido não encontrado")
    order.lines.remove(line)
    db.commit()


def list_extra_items(db: Session, order_id: int, user_id: str) -> List[Dict[str, Any]]:
    order = get_owned_order(db, order_id, user_id)
    return [_serialize_extra(item) for item in order.extra_items]


def add_extra_item(db: Session, order_id: int, item_in: schemas.ExtraItemCreate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    item = models.OrderExtraItem(**item_in.model_dump())
    order.extra_items.append(item)
    db.commit()
    db.refresh(item)
    return _serialize_extra(item)


def update_extra_item(
    db: Session, order_id: int, item_id: int, item_in: schemas.ExtraItemUpdate, user_id: str
) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    item = _child(order.extra_items, item_id, "Item extra não encontrado")
    for key, value in item_in.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    db.commit()
    db.refresh(item)
    return _serialize_extra(item)


def remove_extra_item(db: Session, order_id: int, item_id: int, user_id: str) -> None:
    order = get_owned_order(db, order_id, user_id)
    order.extra_items.remove(_child(order.extra_items, item_id, "Item extra não encontrado"))
    db.commit()


def list_taxes(db: Session, order_id: int, user_id: str) -> List[Dict[str, Any]]:
    order = get_owned_order(db, order_id, user_id)
    return [_serialize_tax(tax) for tax in order.taxes]


def add_tax(db: Session, order_id: int, tax_in: schemas.TaxCreate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    last = db.query(func.max(models.OrderTax.position)).filter(models.OrderTax.order_id == order.id).scalar()
    tax = models.OrderTax(position=(last or 0) + 1, tax_type=tax_in.tax_type, percent=tax_in.percent)
    order.taxes.append(tax)
    db.commit()
    db.refresh(tax)
    logger.info("Order %s: tax %s %s%% at position %s", order_id, tax.tax_type, tax.percent, tax.position)
    return _serialize_tax(tax)


def update_tax(db: Session, order_id: int, tax_id: int, tax_in: schemas.TaxUpdate, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(db, order_id, user_id)
    tax = _child(order.taxes, tax_id, "Imposto não encontrado")
    # position is fixed at insert
    for key, value in tax_in.model_dump(exclude_unset=True).items():
        setattr(tax, key, value)
    db.commit()
    db.refresh(tax)
    return _serialize_tax(tax)


def remove_tax(db: Session, order_id: int, tax_id: int, user_id: str) -> None:
    order = get_owned_order(db, order_id, user_id)
    order.taxes.remove(_child(order.taxes, tax_id, "Imposto não encontrado"))
    db.commit()


def _get_product(db: Session, product_id: int) -> product_models.Product:
    product = db.query(product_models.Product).filter(product_models.Product.id == product_id).first()
    if not product:
        raise NotFoundException("Produto não encontrado", context={"produto_id": product_id})
    return product


def _child(collection, child_id: int, message: str):
    for item in collection:
        if item.id == child_id:
            return item
    raise NotFoundException(message, context={"id": child_id})


def _serialize_extra(item: models.OrderExtraItem) -> Dict[str, Any]:
    return {"id": item.id, "name": item.name, "description": item.description, "value": item.value}


def _serialize_tax(tax: models.OrderTax) -> Dict[str, Any]:
    return {"id": tax.id, "position": tax.position, "tax_type": tax.tax_type, "percent": tax.percent}


def _serialize_order(order: models.Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "client_id": order.client_id,
        "product_id": order.product_id,
        "quantity": order.quantity,
        "status": order.status,
        "has_freight": order.has_freight,
        "freight_amount": order.freight_amount,
        "notes": order.notes,
        "quote_number": order.quote_number,
        "lines": [
            {
                "id": line.id,
                "product_id": line.product_id,
                "product_name": line.product.name,
                "quantity": line.quantity,
            }
            for line in order.lines
        ],
        "extra_items": [_serialize_extra(item) for item in order.extra_items],
        "taxes": [_serialize_tax(tax) for tax in order.taxes],
        "status_history": [
            {
                "from_status": h.from_status,
                "to_status": h.to_status,
                "changed_by": h.changed_by,
                "changed_at": h.created_at,
            }
            for h in order.status_history
        ],
    }
