"""Quote assembly for an order: cost, margin, aggregation and taxes."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.errors import ConflictException
from core.settings import get_settings, to_decimal
from modules.costing.pricing import ExtraItem, LineItem, aggregate, apply_margin, apply_taxes, freight_amount
from modules.costing.service import build_resolver, money, serialize_breakdown
from modules.orders.models import Order
from modules.orders.service import get_owned_order
from modules.quotes import schemas

logger = logging.getLogger(__name__)


def compute_quote(db: Session, order_id: int, user_id: str, fresh: bool = False) -> Dict[str, Any]:
    """Build the full quote for an order owned by ``user_id``.

    The main product (if any) comes first, then the order lines in stored
    order. Any line whose cost cannot be resolved aborts the whole quote.
    """
    settings = get_settings()
    order = get_owned_order(db, order_id, user_id)
    resolver = build_resolver(db)

    entries: List[Tuple[Any, int]] = []
    if order.product_id is not None:
        entries.append((order.product, order.quantity or 0))
    entries.extend((line.product, line.quantity) for line in order.lines)

    line_items: List[LineItem] = []
    line_details: List[Dict[str, Any]] = []
    for number, (product, quantity) in enumerate(entries, start=1):
        cost = resolver.get_cost(product.id, fresh=fresh)
        margin = apply_margin(cost.breakdown.total, product.margin_percent)
        item = LineItem(product_id=product.id, unit_price=margin.price_with_margin, quantity=to_decimal(quantity))
        line_items.append(item)
        line_details.append(
            {
                "line_number": number,
                "product_id": product.id,
                "product_name": product.name,
                "quantity": quantity,
                "cost_source": cost.source,
                "base_cost": serialize_breakdown(cost),
                "margin_percent": margin.margin_percent,
                "margin_value": money(margin.margin_value),
                "unit_price": money(margin.price_with_margin),
                "line_value": money(item.value),
            }
        )

    extras = [ExtraItem(name=e.name, value=to_decimal(e.value)) for e in order.extra_items]
    subtotal = aggregate(line_items, extras, freight_amount(order.has_freight, order.freight_amount))

    taxes = resolver.store.get_order_taxes(order.id)
    chain = apply_taxes(subtotal.subtotal, [(t.tax_type, t.percent) for t in taxes], subtotal.freight)

    generated_at = datetime.utcnow()
    client = order.client
    logger.info(
        "Quote for order %s: subtotal=%s taxed=%s final=%s (%d line(s), %d tax(es))",
        order.id,
        chain.subtotal,
        chain.taxed_total,
        chain.final_total,
        len(line_items),
        len(taxes),
    )
    return {
        "header": {
            "order_id": order.id,
            "quote_number": order.quote_number,
            "status": order.status,
            "client_id": client.id if client else None,
            "client_name": client.company_name if client else None,
            "generated_at": generated_at.isoformat(),
            "valid_until": (generated_at + timedelta(days=settings.quote_validity_days)).isoformat(),
            "line_count": len(line_details),
        },
        "lines": line_details,
        "extra_items": [
            {"name": e.name, "description": e.description, "value": money(to_decimal(e.value))}
            for e in order.extra_items
        ],
        "summary": {
            "products_subtotal": money(subtotal.products_subtotal),
            "extras_subtotal": money(subtotal.extras_subtotal),
            "subtotal": money(subtotal.subtotal),
            "taxes": [
                {
                    "tax_type": step.tax_type,
                    "percent": step.percent,
                    "base": money(step.base),
                    "tax_value": money(step.tax_value),
                    "running_total": money(step.running_total),
                }
                for step in chain.breakdown
            ],
            "taxes_total": money(chain.taxes_total),
            "taxed_total": money(chain.taxed_total),
            "freight": money(chain.freight),
            "final_total": money(chain.final_total),
        },
    }


def format_quote_number(sequence: int, year: int) -> str:
    return f"{get_settings().quote_number_prefix}-{sequence:05d}-{year % 100:02d}"


def next_quote_number(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    year = (now or datetime.utcnow()).year
    last = db.query(func.max(Order.quote_sequence)).filter(Order.quote_year == year).scalar()
    sequence = (last or 0) + 1
    return {
        "year": year,
        "sequence": sequence,
        "quote_number": format_quote_number(sequence, year),
        "format": f"{get_settings().quote_number_prefix}-[número]-{year % 100:02d}",
    }


def assign_quote_number(
    db: Session,
    order_id: int,
    user_id: str,
    number_in: schemas.QuoteNumberAssign,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Give an order its quote number, either the next in this year's sequence or a manual one.

    Without a manual number the call is idempotent: an order that already has
    a number keeps it.
    """
    order = get_owned_order(db, order_id, user_id)
    if number_in.number is None and order.quote_number:
        return _serialize_quote_number(order)

    year = (now or datetime.utcnow()).year
    sequence = number_in.number or next_quote_number(db, now)["sequence"]
    taken = (
        db.query(Order.id)
        .filter(Order.quote_year == year, Order.quote_sequence == sequence, Order.id != order.id)
        .first()
    )
    if taken:
        raise ConflictException(
            "Número de orçamento já utilizado",
            context={"numero": format_quote_number(sequence, year), "pedido_id": taken[0]},
        )

    order.quote_sequence = sequence
    order.quote_year = year
    order.quote_number = format_quote_number(sequence, year)
    db.commit()
    db.refresh(order)
    logger.info("Order %s numbered %s", order.id, order.quote_number)
    return _serialize_quote_number(order)


def _serialize_quote_number(order: Order) -> Dict[str, Any]:
    return {
        "order_id": order.id,
        "year": order.quote_year,
        "sequence": order.quote_sequence,
        "quote_number": order.quote_number,
    }
