import os
import pathlib
import sys
import tempfile
from datetime import datetime
from decimal import Decimal

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must be set before core.database is imported by any test module
_DB_DIR = tempfile.mkdtemp(prefix="orcamentos-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR}/test.db")

import pytest

from core.errors import NotFoundException
from modules.costing.store import BOMStore, DependencyLine, LaborLine, ProcessLine, TaxLine
from modules.products.models import Product


class InMemoryBOMStore(BOMStore):
    """BOM store over plain dicts, with transient Product objects."""

    def __init__(self):
        self.products = {}
        self.edges = {}
        self.processes = {}
        self.labor = {}
        self.taxes = {}
        self.persisted = {}
        self.calls = []

    def add_product(self, product_id, kind="simple", unit_price=None, name=None, is_raw_material=False, stock=0):
        self.products[product_id] = Product(
            id=product_id,
            name=name or f"Produto {product_id}",
            kind=kind,
            unit_price=Decimal(str(unit_price)) if unit_price is not None else None,
            stock_quantity=Decimal(str(stock)),
            is_raw_material=is_raw_material,
            margin_percent=Decimal("0"),
        )
        return self.products[product_id]

    def add_edge(self, parent_id, child_id, quantity):
        self.edges.setdefault(parent_id, []).append(DependencyLine(child_id, Decimal(str(quantity))))

    def add_process(self, product_id, price_per_unit, quantity):
        lines = self.processes.setdefault(product_id, [])
        lines.append(ProcessLine(len(lines) + 1, "Corte", Decimal(str(price_per_unit)), Decimal(str(quantity))))

    def add_labor(self, product_id, price_per_hour, hours):
        lines = self.labor.setdefault(product_id, [])
        lines.append(LaborLine(len(lines) + 1, "fabricação", Decimal(str(price_per_hour)), Decimal(str(hours))))

    def get_product(self, product_id):
        self.calls.append(("get_product", product_id))
        if product_id not in self.products:
            raise NotFoundException("Produto não encontrado", context={"produto_id": product_id})
        return self.products[product_id]

    def list_dependencies(self, parent_id):
        self.calls.append(("list_dependencies", parent_id))
        return list(self.edges.get(parent_id, []))

    def list_parents(self, child_id):
        return [parent for parent, deps in self.edges.items() if any(d.child_id == child_id for d in deps)]

    def list_processes(self, product_id):
        return list(self.processes.get(product_id, []))

    def list_labor(self, product_id):
        return list(self.labor.get(product_id, []))

    def get_order_taxes(self, order_id):
        return [TaxLine(t, Decimal(str(p))) for t, p in self.taxes.get(order_id, [])]

    def persist_cost(self, product_id, breakdown, computed_at: datetime):
        self.persisted[product_id] = breakdown


@pytest.fixture
def memory_store():
    return InMemoryBOMStore()
