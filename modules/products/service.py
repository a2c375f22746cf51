import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from core.errors import CyclicDependencyException, NotFoundException, ValidationAppException
from modules.costing import graph
from modules.costing.resolver import cached_breakdown
from modules.costing.store import SqlBOMStore
from modules.orders.models import Order, OrderLine
from modules.products import models, schemas
from modules.products.types import ProductKind

logger = logging.getLogger(__name__)


def _serialize_product(product: models.Product) -> Dict[str, Any]:
    cached = cached_breakdown(product)
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "kind": product.kind,
        "unit_price": product.unit_price,
        "stock_quantity": product.stock_quantity,
        "is_raw_material": product.is_raw_material,
        "margin_percent": product.margin_percent,
        "cached_cost": {**cached.as_dict(), "computed_at": product.cost_computed_at} if cached else {},
    }


def _serialize_dependency(edge: models.ProductDependency) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "parent_id": edge.parent_id,
        "child_id": edge.child_id,
        "child_name": edge.child.name,
        "quantity_required": edge.quantity_required,
    }


def _get_product_model(db: Session, product_id: int) -> models.Product:
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise NotFoundException("Produto não encontrado", context={"produto_id": product_id})
    return product


def _clear_cached_cost(product: models.Product) -> None:
    product.cached_materials = None
    product.cached_processes = None
    product.cached_labor = None
    product.cost_computed_at = None


def invalidate_cost_cache(db: Session, product_id: int) -> List[int]:
    """Drop the cached cost of a product and of every product built from it.

    Does not commit; callers commit together with the edit that triggered it.
    """
    affected = [product_id] + graph.ancestors(SqlBOMStore(db), product_id)
    for product in db.query(models.Product).filter(models.Product.id.in_(affected)).all():
        _clear_cached_cost(product)
    logger.debug("Invalidated cost cache for products %s", affected)
    return affected


def create_product(db: Session, product_in: schemas.ProductCreate) -> Dict[str, Any]:
    product = models.Product(
        name=product_in.name,
        description=product_in.description,
        kind=product_in.kind.value,
        unit_price=product_in.unit_price,
        stock_quantity=product_in.stock_quantity,
        is_raw_material=product_in.is_raw_material,
        margin_percent=product_in.margin_percent,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.kind)
    return _serialize_product(product)


def list_products(db: Session) -> List[Dict[str, Any]]:
    products = db.query(models.Product).order_by(models.Product.id).all()
    return [_serialize_product(p) for p in products]


def get_product(db: Session, product_id: int) -> Dict[str, Any]:
    return _serialize_product(_get_product_model(db, product_id))


def update_product(db: Session, product_id: int, product_in: schemas.ProductUpdate) -> Dict[str, Any]:
    product = _get_product_model(db, product_id)
    changes = product_in.model_dump(exclude_unset=True)
    if changes.get("kind") is not None:
        changes["kind"] = ProductKind(changes["kind"]).value
    for key, value in changes.items():
        setattr(product, key, value)

    if product.kind == ProductKind.SIMPLE.value:
        if product.unit_price is None:
            raise ValidationAppException("Produto simples exige preço unitário", context={"produto_id": product_id})
        if product.dependencies or product.processes or product.labor:
            raise ValidationAppException(
                "Remova dependências, processos e mão de obra antes de tornar o produto simples",
                context={"produto_id": product_id},
            )

    invalidate_cost_cache(db, product_id)
    db.commit()
    db.refresh(product)
    return _serialize_product(product)


def delete_product(db: Session, product_id: int) -> None:
    product = _get_product_model(db, product_id)
    if product.used_in:
        raise ValidationAppException(
            "Produto é dependência de outros produtos",
            context={"produto_id": product_id, "usado_em": [e.parent_id for e in product.used_in]},
        )
    in_orders = (
        db.query(OrderLine.id).filter(OrderLine.product_id == product_id).first()
        or db.query(Order.id).filter(Order.product_id == product_id).first()
    )
    if in_orders:
        raise ValidationAppException("Produto está em uso em pedidos", context={"produto_id": product_id})
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)


def list_dependencies(db: Session, product_id: int) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    return [_serialize_dependency(edge) for edge in product.dependencies]


def add_dependency(db: Session, product_id: int, dependency_in: schemas.DependencyCreate) -> Dict[str, Any]:
    parent = _get_product_model(db, product_id)
    child = _get_product_model(db, dependency_in.child_id)
    if parent.kind != ProductKind.COMPUTED.value:
        raise ValidationAppException(
            "Apenas produtos de cálculo podem ter dependências", context={"produto_id": product_id}
        )

    existing = (
        db.query(models.ProductDependency)
        .filter(models.ProductDependency.parent_id == parent.id)
        .filter(models.ProductDependency.child_id == child.id)
        .first()
    )
    if existing:
        raise ValidationAppException(
            "Dependência já cadastrada", context={"produto_id": parent.id, "dependencia_id": child.id}
        )
    if graph.would_create_cycle(SqlBOMStore(db), parent.id, child.id):
        raise CyclicDependencyException([parent.id, child.id, parent.id], message="Esta dependência criaria um ciclo")

    edge = models.ProductDependency(parent=parent, child=child, quantity_required=dependency_in.quantity_required)
    db.add(edge)
    invalidate_cost_cache(db, parent.id)
    db.commit()
    db.refresh(edge)
    logger.info("Added dependency %s -> %s (x%s)", parent.id, child.id, edge.quantity_required)
    return _serialize_dependency(edge)


def remove_dependency(db: Session, product_id: int, dependency_id: int) -> None:
    edge = (
        db.query(models.ProductDependency)
        .filter(models.ProductDependency.id == dependency_id)
        .filter(models.ProductDependency.parent_id == product_id)
        .first()
    )
    if not edge:
        raise NotFoundException("Dependência não encontrada", context={"dependencia_id": dependency_id})
    db.delete(edge)
    invalidate_cost_cache(db, product_id)
    db.commit()


def check_circular(db: Session, product_id: int, child_id: int) -> Dict[str, Any]:
    _get_product_model(db, product_id)
    _get_product_model(db, child_id)
    has_cycle = graph.would_create_cycle(SqlBOMStore(db), product_id, child_id)
    logger.info("Cycle check %s -> %s: %s", product_id, child_id, "cycle" if has_cycle else "ok")
    return {
        "has_cycle": has_cycle,
        "message": "Esta dependência criaria um ciclo circular"
        if has_cycle
        else "Dependência pode ser adicionada sem criar ciclos",
    }


def dependency_tree(db: Session, product_id: int) -> Dict[str, Any]:
    return {"product": graph.dependency_tree(SqlBOMStore(db), product_id)}


def where_used(db: Session, product_id: int) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    return [
        {"parent_id": e.parent_id, "parent_name": e.parent.name, "quantity_required": e.quantity_required}
        for e in product.used_in
    ]


# Processes and labor attached to a product


def list_product_processes(db: Session, product_id: int) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    return [
        {
            "id": link.id,
            "process_id": link.process_id,
            "name": link.process.name,
            "price_per_unit": link.process.price_per_unit,
            "quantity": link.quantity,
        }
        for link in product.processes
    ]


def attach_process(db: Session, product_id: int, link_in: schemas.ProductProcessCreate) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    _require_computed(product)
    process = _get_process_model(db, link_in.process_id)
    product.processes.append(models.ProductProcess(process=process, quantity=link_in.quantity))
    invalidate_cost_cache(db, product_id)
    db.commit()
    return list_product_processes(db, product_id)


def detach_process(db: Session, product_id: int, link_id: int) -> None:
    link = (
        db.query(models.ProductProcess)
        .filter(models.ProductProcess.id == link_id)
        .filter(models.ProductProcess.product_id == product_id)
        .first()
    )
    if not link:
        raise NotFoundException("Processo do produto não encontrado", context={"id": link_id})
    db.delete(link)
    invalidate_cost_cache(db, product_id)
    db.commit()


def list_product_labor(db: Session, product_id: int) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    return [
        {
            "id": link.id,
            "labor_id": link.labor_id,
            "labor_type": link.labor.labor_type,
            "price_per_hour": link.labor.price_per_hour,
            "hours": link.hours,
        }
        for link in product.labor
    ]


def attach_labor(db: Session, product_id: int, link_in: schemas.ProductLaborCreate) -> List[Dict[str, Any]]:
    product = _get_product_model(db, product_id)
    _require_computed(product)
    labor = _get_labor_model(db, link_in.labor_id)
    product.labor.append(models.ProductLabor(labor=labor, hours=link_in.hours))
    invalidate_cost_cache(db, product_id)
    db.commit()
    return list_product_labor(db, product_id)


def detach_labor(db: Session, product_id: int, link_id: int) -> None:
    link = (
        db.query(models.ProductLabor)
        .filter(models.ProductLabor.id == link_id)
        .filter(models.ProductLabor.product_id == product_id)
        .first()
    )
    if not link:
        raise NotFoundException("Mão de obra do produto não encontrada", context={"id": link_id})
    db.delete(link)
    invalidate_cost_cache(db, product_id)
    db.commit()


def _require_computed(product: models.Product) -> None:
    if product.kind != ProductKind.COMPUTED.value:
        raise ValidationAppException(
            "Processos e mão de obra só se aplicam a produtos de cálculo", context={"produto_id": product.id}
        )


# Process and labor catalogs


def _get_process_model(db: Session, process_id: int) -> models.Process:
    process = db.query(models.Process).filter(models.Process.id == process_id).first()
    if not process:
        raise NotFoundException("Processo não encontrado", context={"processo_id": process_id})
    return process


def _get_labor_model(db: Session, labor_id: int) -> models.Labor:
    labor = db.query(models.Labor).filter(models.Labor.id == labor_id).first()
    if not labor:
        raise NotFoundException("Mão de obra não encontrada", context={"mao_de_obra_id": labor_id})
    return labor


def create_process(db: Session, process_in: schemas.ProcessCreate) -> models.Process:
    process = models.Process(**process_in.model_dump())
    db.add(process)
    db.commit()
    db.refresh(process)
    return process


def list_processes(db: Session) -> List[models.Process]:
    return db.query(models.Process).order_by(models.Process.name).all()


def get_process(db: Session, process_id: int) -> models.Process:
    return _get_process_model(db, process_id)


def update_process(db: Session, process_id: int, process_in: schemas.ProcessUpdate) -> models.Process:
    process = _get_process_model(db, process_id)
    for key, value in process_in.model_dump(exclude_unset=True).items():
        setattr(process, key, value)
    users = db.query(models.ProductProcess.product_id).filter(models.ProductProcess.process_id == process_id).all()
    for (product_id,) in users:
        invalidate_cost_cache(db, product_id)
    db.commit()
    db.refresh(process)
    return process


def create_labor(db: Session, labor_in: schemas.LaborCreate) -> models.Labor:
    labor = models.Labor(**labor_in.model_dump())
    db.add(labor)
    db.commit()
    db.refresh(labor)
    return labor


def list_labor(db: Session) -> List[models.Labor]:
    return db.query(models.Labor).order_by(models.Labor.labor_type).all()


def get_labor(db: Session, labor_id: int) -> models.Labor:
    return _get_labor_model(db, labor_id)


def update_labor(db: Session, labor_id: int, labor_in: schemas.LaborUpdate) -> models.Labor:
    labor = _get_labor_model(db, labor_id)
    for key, value in labor_in.model_dump(exclude_unset=True).items():
        setattr(labor, key, value)
    users = db.query(models.ProductLabor.product_id).filter(models.ProductLabor.labor_id == labor_id).all()
    for (product_id,) in users:
        invalidate_cost_cache(db, product_id)
    db.commit()
    db.refresh(labor)
    return labor
