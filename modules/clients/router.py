from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from modules.clients import schemas, service

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=schemas.ClientRead)
def create_client_endpoint(client_in: schemas.ClientCreate, db: Session = Depends(get_db)):
    return service.create_client(db, client_in)


@router.get("", response_model=list[schemas.ClientRead])
def list_clients_endpoint(db: Session = Depends(get_db)):
    return service.list_clients(db)


@router.get("/{client_id}", response_model=schemas.ClientRead)
def get_client_endpoint(client_id: int, db: Session = Depends(get_db)):
    return service.get_client(db, client_id)


@router.patch("/{client_id}/status", response_model=schemas.ClientRead)
def update_client_status_endpoint(
    client_id: int, status_in: schemas.ClientStatusUpdate, db: Session = Depends(get_db)
):
    return service.update_quote_status(db, client_id, status_in)
