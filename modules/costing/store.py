"""Read/write access to catalog data needed by the cost pipeline."""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import NotFoundException, UpstreamUnavailableException
from modules.orders import models as order_models
from modules.products import models

if TYPE_CHECKING:
    from modules.costing.resolver import CostBreakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyLine:
    child_id: int
    quantity_required: Decimal


@dataclass(frozen=True)
class ProcessLine:
    process_id: int
    name: str
    price_per_unit: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class LaborLine:
    labor_id: int
    labor_type: str
    price_per_hour: Decimal
    hours: Decimal


@dataclass(frozen=True)
class TaxLine:
    tax_type: str
    percent: Decimal


class BOMStore(ABC):
    @abstractmethod
    def get_product(self, product_id: int) -> models.Product:
        """Return the product or raise NotFoundException."""

    @abstractmethod
    def list_dependencies(self, parent_id: int) -> List[DependencyLine]:
        ...

    @abstractmethod
    def list_parents(self, child_id: int) -> List[int]:
        ...

    @abstractmethod
    def list_processes(self, product_id: int) -> List[ProcessLine]:
        ...

    @abstractmethod
    def list_labor(self, product_id: int) -> List[LaborLine]:
        ...

    @abstractmethod
    def get_order_taxes(self, order_id: int) -> List[TaxLine]:
        """Taxes in stored position order."""

    @abstractmethod
    def persist_cost(self, product_id: int, breakdown: "CostBreakdown", computed_at: datetime) -> None:
        ...


class SqlBOMStore(BOMStore):
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _reading(self, what: str, **context):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("BOM store access failed (%s) %s: %s", what, context, exc)
            self.db.rollback()
            raise UpstreamUnavailableException(context={"operacao": what, **{k: str(v) for k, v in context.items()}}) from exc

    def get_product(self, product_id: int) -> models.Product:
        with self._reading("get_product", produto_id=product_id):
            product = self.db.query(models.Product).filter(models.Product.id == product_id).first()
        if not product:
            raise NotFoundException("Produto não encontrado", context={"produto_id": product_id})
        return product

    def list_dependencies(self, parent_id: int) -> List[DependencyLine]:
        with self._reading("list_dependencies", produto_id=parent_id):
            edges = (
                self.db.query(models.ProductDependency)
                .filter(models.ProductDependency.parent_id == parent_id)
                .order_by(models.ProductDependency.id)
                .all()
            )
        return [DependencyLine(child_id=e.child_id, quantity_required=e.quantity_required) for e in edges]

    def list_parents(self, child_id: int) -> List[int]:
        with self._reading("list_parents", produto_id=child_id):
            rows = (
                self.db.query(models.ProductDependency.parent_id)
                .filter(models.ProductDependency.child_id == child_id)
                .order_by(models.ProductDependency.id)
                .all()
            )
        return [row[0] for row in rows]

    def list_processes(self, product_id: int) -> List[ProcessLine]:
        with self._reading("list_processes", produto_id=product_id):
            rows = (
                self.db.query(models.ProductProcess, models.Process)
                .join(models.Process, models.ProductProcess.process_id == models.Process.id)
                .filter(models.ProductProcess.product_id == product_id)
                .order_by(models.ProductProcess.id)
                .all()
            )
        return [
            ProcessLine(
                process_id=process.id,
                name=process.name,
                price_per_unit=process.price_per_unit,
                quantity=link.quantity,
            )
            for link, process in rows
        ]

    def list_labor(self, product_id: int) -> List[LaborLine]:
        with self._reading("list_labor", produto_id=product_id):
            rows = (
                self.db.query(models.ProductLabor, models.Labor)
                .join(models.Labor, models.ProductLabor.labor_id == models.Labor.id)
                .filter(models.ProductLabor.product_id == product_id)
                .order_by(models.ProductLabor.id)
                .all()
            )
        return [
            LaborLine(
                labor_id=labor.id,
                labor_type=labor.labor_type,
                price_per_hour=labor.price_per_hour,
                hours=link.hours,
            )
            for link, labor in rows
        ]

    def get_order_taxes(self, order_id: int) -> List[TaxLine]:
        with self._reading("get_order_taxes", pedido_id=order_id):
            taxes = (
                self.db.query(order_models.OrderTax)
                .filter(order_models.OrderTax.order_id == order_id)
                .order_by(order_models.OrderTax.position, order_models.OrderTax.id)
                .all()
            )
        return [TaxLine(tax_type=t.tax_type, percent=t.percent) for t in taxes]

    def persist_cost(self, product_id: int, breakdown: "CostBreakdown", computed_at: datetime) -> None:
        with self._reading("persist_cost", produto_id=product_id):
            product = self.db.query(models.Product).filter(models.Product.id == product_id).first()
            if product is None:
                return
            product.cached_materials = str(breakdown.materials_subtotal)
            product.cached_processes = str(breakdown.processes_subtotal)
            product.cached_labor = str(breakdown.labor_subtotal)
            product.cost_computed_at = computed_at
            self.db.commit()
