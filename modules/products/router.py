from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.database import get_db
from modules.products import schemas, service

router = APIRouter(prefix="/products", tags=["products"])
processes_router = APIRouter(prefix="/processes", tags=["processes"])
labor_router = APIRouter(prefix="/labor", tags=["labor"])


@router.post("", response_model=schemas.ProductRead)
def create_product_endpoint(product_in: schemas.ProductCreate, db: Session = Depends(get_db)):
    return service.create_product(db, product_in)


@router.get("", response_model=list[schemas.ProductRead])
def list_products_endpoint(db: Session = Depends(get_db)):
    return service.list_products(db)


@router.get("/{product_id}", response_model=schemas.ProductRead)
def get_product_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.get_product(db, product_id)


@router.patch("/{product_id}", response_model=schemas.ProductRead)
def update_product_endpoint(product_id: int, product_in: schemas.ProductUpdate, db: Session = Depends(get_db)):
    return service.update_product(db, product_id, product_in)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product_endpoint(product_id: int, db: Session = Depends(get_db)):
    service.delete_product(db, product_id)


@router.get("/{product_id}/dependencies", response_model=list[schemas.DependencyRead])
def list_dependencies_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.list_dependencies(db, product_id)


@router.post("/{product_id}/dependencies", response_model=schemas.DependencyRead)
def add_dependency_endpoint(product_id: int, dependency_in: schemas.DependencyCreate, db: Session = Depends(get_db)):
    return service.add_dependency(db, product_id, dependency_in)


@router.delete("/{product_id}/dependencies/{dependency_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_dependency_endpoint(product_id: int, dependency_id: int, db: Session = Depends(get_db)):
    service.remove_dependency(db, product_id, dependency_id)


@router.post("/{product_id}/dependencies/circular-check", response_model=schemas.CircularCheckRead)
def circular_check_endpoint(product_id: int, check_in: schemas.CircularCheckRequest, db: Session = Depends(get_db)):
    return service.check_circular(db, product_id, check_in.child_id)


@router.get("/{product_id}/dependency-tree", response_model=schemas.ProductTreeRead)
def dependency_tree_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.dependency_tree(db, product_id)


@router.get("/{product_id}/where-used", response_model=list[schemas.WhereUsedRead])
def where_used_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.where_used(db, product_id)


@router.get("/{product_id}/processes", response_model=list[schemas.ProductProcessRead])
def list_product_processes_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.list_product_processes(db, product_id)


@router.post("/{product_id}/processes", response_model=list[schemas.ProductProcessRead])
def attach_process_endpoint(product_id: int, link_in: schemas.ProductProcessCreate, db: Session = Depends(get_db)):
    return service.attach_process(db, product_id, link_in)


@router.delete("/{product_id}/processes/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def detach_process_endpoint(product_id: int, link_id: int, db: Session = Depends(get_db)):
    service.detach_process(db, product_id, link_id)


@router.get("/{product_id}/labor", response_model=list[schemas.ProductLaborRead])
def list_product_labor_endpoint(product_id: int, db: Session = Depends(get_db)):
    return service.list_product_labor(db, product_id)


@router.post("/{product_id}/labor", response_model=list[schemas.ProductLaborRead])
def attach_labor_endpoint(product_id: int, link_in: schemas.ProductLaborCreate, db: Session = Depends(get_db)):
    return service.attach_labor(db, product_id, link_in)


@router.delete("/{product_id}/labor/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def detach_labor_endpoint(product_id: int, link_id: int, db: Session = Depends(get_db)):
    service.detach_labor(db, product_id, link_id)


@processes_router.post("", response_model=schemas.ProcessRead)
def create_process_endpoint(process_in: schemas.ProcessCreate, db: Session = Depends(get_db)):
    return service.create_process(db, process_in)


@processes_router.get("", response_model=list[schemas.ProcessRead])
def list_processes_endpoint(db: Session = Depends(get_db)):
    return service.list_processes(db)


@processes_router.get("/{process_id}", response_model=schemas.ProcessRead)
def get_process_endpoint(process_id: int, db: Session = Depends(get_db)):
    return service.get_process(db, process_id)


@processes_router.patch("/{process_id}", response_model=schemas.ProcessRead)
def update_process_endpoint(process_id: int, process_in: schemas.ProcessUpdate, db: Session = Depends(get_db)):
    return service.update_process(db, process_id, process_in)


@labor_router.post("", response_model=schemas.LaborRead)
def create_labor_endpoint(labor_in: schemas.LaborCreate, db: Session = Depends(get_db)):
    return service.create_labor(db, labor_in)


@labor_router.get("", response_model=list[schemas.LaborRead])
def list_labor_endpoint(db: Session = Depends(get_db)):
    return service.list_labor(db)


@labor_router.get("/{labor_id}", response_model=schemas.LaborRead)
def get_labor_endpoint(labor_id: int, db: Session = Depends(get_db)):
    return service.get_labor(db, labor_id)


@labor_router.patch("/{labor_id}", response_model=schemas.LaborRead)
def update_labor_endpoint(labor_id: int, labor_in: schemas.LaborUpdate, db: Session = Depends(get_db)):
    return service.update_labor(db, labor_id, labor_in)
