"""BOM graph queries: trees, cycle checks, raw-material explosion, ancestors."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Set, Tuple

from core.errors import CyclicDependencyException, ValidationAppException
from core.settings import to_decimal
from modules.costing.store import BOMStore

logger = logging.getLogger(__name__)


def dependency_tree(store: BOMStore, product_id: int) -> Dict[str, Any]:
    """Nested view of a product and everything below it."""
    root = store.get_product(product_id)
    node = _tree_node(root, Decimal("1"), 0)
    node["dependencies"] = _children(store, product_id, 1, (product_id,))
    return node


def _tree_node(product, quantity: Decimal, level: int) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "kind": product.kind,
        "is_raw_material": bool(product.is_raw_material),
        "unit_price": product.unit_price,
        "quantity_required": quantity,
        "level": level,
        "dependencies": [],
    }


def _children(store: BOMStore, parent_id: int, level: int, path: Tuple[int, ...]) -> List[Dict[str, Any]]:
    nodes = []
    for dep in store.list_dependencies(parent_id):
        if dep.child_id in path:
            raise CyclicDependencyException(path + (dep.child_id,))
        child = store.get_product(dep.child_id)
        node = _tree_node(child, to_decimal(dep.quantity_required), level)
        node["dependencies"] = _children(store, child.id, level + 1, path + (child.id,))
        nodes.append(node)
    return nodes


def would_create_cycle(store: BOMStore, parent_id: int, child_id: int) -> bool:
    """True when adding the edge parent -> child would close a cycle.

    That is the case when the child already reaches the parent (or is it).
    """
    if parent_id == child_id:
        return True
    stack = [child_id]
    seen: Set[int] = set()
    while stack:
        current = stack.pop()
        if current == parent_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(dep.child_id for dep in store.list_dependencies(current))
    return False


def ancestors(store: BOMStore, product_id: int) -> List[int]:
    """Every product that transitively depends on ``product_id``, nearest first."""
    found: List[int] = []
    seen: Set[int] = {product_id}
    queue = [product_id]
    while queue:
        current = queue.pop(0)
        for parent_id in store.list_parents(current):
            if parent_id not in seen:
                seen.add(parent_id)
                found.append(parent_id)
                queue.append(parent_id)
    return found


def raw_material_requirements(store: BOMStore, product_id: int, quantity=1) -> List[Dict[str, Any]]:
    """Flatten the BOM below a product into raw-material quantities.

    Quantities multiply along each path and add up when the same material is
    reached through several paths. Recursion stops at raw materials.
    """
    qty = to_decimal(quantity)
    if qty <= 0:
        raise ValidationAppException("Quantidade deve ser maior que zero", context={"produto_id": product_id})

    store.get_product(product_id)
    totals: Dict[int, Decimal] = {}
    _explode(store, product_id, qty, (product_id,), totals)

    requirements = []
    for material_id, required in totals.items():
        material = store.get_product(material_id)
        if material.unit_price is None:
            raise ValidationAppException(
                "Matéria-prima sem preço unitário",
                context={"produto_id": material_id, "etapa": "materias_primas"},
            )
        unit_price = to_decimal(material.unit_price)
        stock = to_decimal(material.stock_quantity if material.stock_quantity is not None else 0)
        requirements.append(
            {
                "product_id": material.id,
                "name": material.name,
                "quantity_required": required,
                "unit_price": unit_price,
                "subtotal": unit_price * required,
                "stock_quantity": stock,
                "in_stock": stock >= required,
            }
        )
    requirements.sort(key=lambda r: r["name"])
    return requirements


def _explode(store: BOMStore, parent_id: int, quantity: Decimal, path: Tuple[int, ...], totals: Dict[int, Decimal]):
    for dep in store.list_dependencies(parent_id):
        if dep.child_id in path:
            raise CyclicDependencyException(path + (dep.child_id,))
        needed = to_decimal(dep.quantity_required) * quantity
        child = store.get_product(dep.child_id)
        if child.is_raw_material:
            totals[child.id] = totals.get(child.id, Decimal("0")) + needed
        else:
            _explode(store, child.id, needed, path + (child.id,), totals)
