import logging
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from core.settings import get_settings, round_money
from modules.costing import graph
from modules.costing.pricing import apply_margin
from modules.costing.resolver import CostResolver, CostResult
from modules.costing.store import SqlBOMStore

logger = logging.getLogger(__name__)


def build_resolver(db: Session) -> CostResolver:
    settings = get_settings()
    return CostResolver(SqlBOMStore(db), use_cache=settings.cost_cache_enabled)


def money(value: Decimal) -> Decimal:
    return round_money(value, get_settings().money_decimal_places)


def serialize_breakdown(result: CostResult) -> Dict[str, Any]:
    return {key: money(value) for key, value in result.breakdown.as_dict().items()}


def get_product_cost(db: Session, product_id: int, fresh: bool = False) -> Dict[str, Any]:
    resolver = build_resolver(db)
    result = resolver.get_cost(product_id, fresh=fresh)
    product = resolver.store.get_product(product_id)
    logger.info("Cost for product %s: %s (%s)", product_id, result.breakdown.total, result.source)
    return {
        "product_id": product.id,
        "product_name": product.name,
        "kind": product.kind,
        "unit_price": product.unit_price,
        "source": result.source,
        "computed_at": result.computed_at,
        "cost": serialize_breakdown(result),
    }


def get_product_cost_with_margin(db: Session, product_id: int, fresh: bool = False) -> Dict[str, Any]:
    resolver = build_resolver(db)
    result = resolver.get_cost(product_id, fresh=fresh)
    product = resolver.store.get_product(product_id)
    margin = apply_margin(result.breakdown.total, product.margin_percent)
    logger.info(
        "Cost with margin for product %s: base=%s margin=%s%% price=%s",
        product_id,
        margin.base_cost,
        margin.margin_percent,
        margin.price_with_margin,
    )
    return {
        "product_id": product.id,
        "product_name": product.name,
        "base_cost": money(margin.base_cost),
        "margin_percent": margin.margin_percent,
        "margin_value": money(margin.margin_value),
        "price_with_margin": money(margin.price_with_margin),
        "source": result.source,
        "computed_at": result.computed_at,
        "cost": serialize_breakdown(result),
    }


def recalculate_product_cost(db: Session, product_id: int) -> Dict[str, Any]:
    payload = get_product_cost(db, product_id, fresh=True)
    return {"success": True, "message": "Custo recalculado com sucesso", "result": payload}


def get_raw_material_requirements(db: Session, product_id: int, quantity: Decimal) -> Dict[str, Any]:
    items: List[Dict[str, Any]] = graph.raw_material_requirements(SqlBOMStore(db), product_id, quantity)
    total = sum((item["subtotal"] for item in items), Decimal("0"))
    for item in items:
        item["subtotal"] = money(item["subtotal"])
    return {
        "product_id": product_id,
        "quantity": quantity,
        "materials": items,
        "materials_total": money(total),
        "all_in_stock": all(item["in_stock"] for item in items),
    }
