"""Recursive base-cost resolution over the product BOM graph."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from core.errors import CyclicDependencyException, ValidationAppException
from core.settings import ZERO, to_decimal
from modules.costing.store import BOMStore
from modules.products.models import Product
from modules.products.types import ProductKind

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_CALCULATED = "calculated"


@dataclass(frozen=True)
class CostBreakdown:
    materials_subtotal: Decimal = ZERO
    processes_subtotal: Decimal = ZERO
    labor_subtotal: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.materials_subtotal + self.processes_subtotal + self.labor_subtotal

    def scaled(self, factor: Decimal) -> "CostBreakdown":
        return CostBreakdown(
            materials_subtotal=self.materials_subtotal * factor,
            processes_subtotal=self.processes_subtotal * factor,
            labor_subtotal=self.labor_subtotal * factor,
        )

    def as_dict(self) -> Dict[str, Decimal]:
        return {
            "total": self.total,
            "materials_subtotal": self.materials_subtotal,
            "processes_subtotal": self.processes_subtotal,
            "labor_subtotal": self.labor_subtotal,
        }


@dataclass(frozen=True)
class CostResult:
    product_id: int
    breakdown: CostBreakdown
    source: str
    computed_at: Optional[datetime]


def cached_breakdown(product: Product) -> Optional[CostBreakdown]:
    fields = (product.cached_materials, product.cached_processes, product.cached_labor)
    if product.cost_computed_at is None or any(v is None for v in fields):
        return None
    return CostBreakdown(
        materials_subtotal=to_decimal(product.cached_materials),
        processes_subtotal=to_decimal(product.cached_processes),
        labor_subtotal=to_decimal(product.cached_labor),
    )


class CostResolver:
    """Resolves a product's base cost from its BOM, processes and labor.

    Simple products cost ``unit_price`` per unit. Computed products cost the sum
    of each child's unit cost times the edge quantity, plus their own processes
    and labor. The ids on the path from the root are carried down the recursion
    so that a product reappearing on its own path raises
    ``CyclicDependencyException`` instead of recursing forever.
    """

    def __init__(self, store: BOMStore, use_cache: bool = True):
        self.store = store
        self.use_cache = use_cache

    def resolve_base_cost(self, product_id: int, quantity=1, persist: bool = True) -> CostBreakdown:
        qty = to_decimal(quantity)
        if qty < 0:
            raise ValidationAppException("Quantidade não pode ser negativa", context={"produto_id": product_id})

        resolved: Dict[int, CostBreakdown] = {}
        computed_ids: List[int] = []
        unit_cost = self._resolve(product_id, (), resolved, computed_ids)

        if persist and computed_ids:
            computed_at = datetime.utcnow()
            for pid in computed_ids:
                self.store.persist_cost(pid, resolved[pid], computed_at)
            logger.info("Persisted cost cache for %d product(s) under %s", len(computed_ids), product_id)

        return unit_cost.scaled(qty)

    def get_cost(self, product_id: int, fresh: bool = False) -> CostResult:
        product = self.store.get_product(product_id)
        if self.use_cache and not fresh and product.kind == ProductKind.COMPUTED.value:
            cached = cached_breakdown(product)
            if cached is not None:
                return CostResult(product_id, cached, SOURCE_CACHE, product.cost_computed_at)
        breakdown = self.resolve_base_cost(product_id)
        return CostResult(product_id, breakdown, SOURCE_CALCULATED, datetime.utcnow())

    def _resolve(
        self,
        product_id: int,
        path: Tuple[int, ...],
        resolved: Dict[int, CostBreakdown],
        computed_ids: List[int],
    ) -> CostBreakdown:
        if product_id in path:
            cycle = path + (product_id,)
            logger.warning("Cyclic dependency while resolving cost: %s", " -> ".join(map(str, cycle)))
            raise CyclicDependencyException(cycle)
        if product_id in resolved:
            return resolved[product_id]

        product = self.store.get_product(product_id)
        if product.kind == ProductKind.SIMPLE.value:
            if product.unit_price is None:
                raise ValidationAppException(
                    "Produto simples sem preço unitário",
                    context={"produto_id": product_id, "etapa": "custo_base"},
                )
            breakdown = CostBreakdown(materials_subtotal=to_decimal(product.unit_price))
        elif product.kind == ProductKind.COMPUTED.value:
            breakdown = self._resolve_computed(product_id, path + (product_id,), resolved, computed_ids)
            computed_ids.append(product_id)
        else:
            raise ValidationAppException(
                "Tipo de produto desconhecido", context={"produto_id": product_id, "tipo": str(product.kind)}
            )

        resolved[product_id] = breakdown
        logger.debug("Resolved product %s: %s", product_id, breakdown)
        return breakdown

    def _resolve_computed(
        self,
        product_id: int,
        path: Tuple[int, ...],
        resolved: Dict[int, CostBreakdown],
        computed_ids: List[int],
    ) -> CostBreakdown:
        materials = ZERO
        for dep in self.store.list_dependencies(product_id):
            qty = _non_negative(dep.quantity_required, "quantidade_necessaria", product_id)
            child = self._resolve(dep.child_id, path, resolved, computed_ids)
            materials += child.total * qty

        processes = ZERO
        for line in self.store.list_processes(product_id):
            price = _non_negative(line.price_per_unit, "preco_por_unidade", product_id)
            processes += price * _non_negative(line.quantity, "quantidade", product_id)

        labor = ZERO
        for line in self.store.list_labor(product_id):
            rate = _non_negative(line.price_per_hour, "preco_por_hora", product_id)
            labor += rate * _non_negative(line.hours, "horas", product_id)

        return CostBreakdown(materials_subtotal=materials, processes_subtotal=processes, labor_subtotal=labor)


def _non_negative(value, field: str, product_id: int) -> Decimal:
    if value is None:
        raise ValidationAppException(
            f"Valor ausente em {field}", context={"produto_id": product_id, "campo": field, "etapa": "custo_base"}
        )
    number = to_decimal(value)
    if number < 0:
        raise ValidationAppException(
            f"Valor negativo em {field}", context={"produto_id": product_id, "campo": field, "etapa": "custo_base"}
        )
    return number
