import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from decimal import Decimal

import pytest

from core.errors import CyclicDependencyException
from modules.costing import graph


def build_machine(store):
    store.add_product(1, kind="computed", name="Máquina")
    store.add_product(2, kind="computed", name="Subconjunto")
    store.add_product(3, unit_price=5, name="Chapa de aço", is_raw_material=True, stock=10)
    store.add_product(4, unit_price=2, name="Parafuso", is_raw_material=True, stock=1)
    store.add_edge(1, 3, 2)
    store.add_edge(1, 2, 1)
    store.add_edge(2, 3, 1)
    store.add_edge(2, 4, 4)


def test_raw_material_requirements(memory_store):
    build_machine(memory_store)
    items = graph.raw_material_requirements(memory_store, 1, quantity=3)

    assert [i["name"] for i in items] == ["Chapa de aço", "Parafuso"]
    steel, screw = items
    assert steel["quantity_required"] == Decimal("9")
    assert steel["subtotal"] == Decimal("45")
    assert steel["in_stock"] is True
    assert screw["quantity_required"] == Decimal("12")
    assert screw["in_stock"] is False


def test_would_create_cycle(memory_store):
    build_machine(memory_store)
    assert graph.would_create_cycle(memory_store, 2, 1) is True
    assert graph.would_create_cycle(memory_store, 3, 1) is True
    assert graph.would_create_cycle(memory_store, 1, 1) is True
    assert graph.would_create_cycle(memory_store, 1, 4) is False


def test_ancestors(memory_store):
    build_machine(memory_store)
    assert graph.ancestors(memory_store, 4) == [2, 1]
    assert sorted(graph.ancestors(memory_store, 3)) == [1, 2]
    assert graph.ancestors(memory_store, 1) == []


def test_dependency_tree(memory_store):
    build_machine(memory_store)
    tree = graph.dependency_tree(memory_store, 1)

    assert tree["level"] == 0
    assert [child["id"] for child in tree["dependencies"]] == [3, 2]
    sub = tree["dependencies"][1]
    assert sub["level"] == 1
    assert [child["quantity_required"] for child in sub["dependencies"]] == [Decimal("1"), Decimal("4")]
    assert sub["dependencies"][0]["level"] == 2


def test_dependency_tree_rejects_cycles(memory_store):
    memory_store.add_product(1, kind="computed")
    memory_store.add_product(2, kind="computed")
    memory_store.add_edge(1, 2, 1)
    memory_store.add_edge(2, 1, 1)
    with pytest.raises(CyclicDependencyException):
        graph.dependency_tree(memory_store, 1)
