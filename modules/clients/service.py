import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.errors import InvalidTransitionException, NotFoundException
from core.settings import get_settings
from modules.clients import models, schemas

logger = logging.getLogger(__name__)

_CLIENT_TRANSITIONS = {
    schemas.QuoteStatus.OPEN: {schemas.QuoteStatus.CONFIRMED, schemas.QuoteStatus.CANCELLED},
    schemas.QuoteStatus.CONFIRMED: set(),
    schemas.QuoteStatus.CANCELLED: set(),
}


def _serialize_client(client: models.Client, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    return {
        "id": client.id,
        "company_name": client.company_name,
        "contact_name": client.contact_name,
        "email": client.email,
        "phone": client.phone,
        "document_number": client.document_number,
        "quote_status": client.quote_status,
        "created_at": client.created_at,
        "cancellation_deadline": client.cancellation_deadline,
        "deadline_passed": client.quote_status == schemas.QuoteStatus.OPEN.value
        and client.cancellation_deadline <= now,
    }


def get_client_model(db: Session, client_id: int) -> models.Client:
    client = db.query(models.Client).filter(models.Client.id == client_id).first()
    if not client:
        raise NotFoundException("Cliente não encontrado", context={"cliente_id": client_id})
    return client


def create_client(db: Session, client_in: schemas.ClientCreate, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    deadline = now + timedelta(days=get_settings().client_quote_deadline_days)
    client = models.Client(
        **client_in.model_dump(),
        quote_status=schemas.QuoteStatus.OPEN.value,
        created_at=now,
        cancellation_deadline=deadline,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return _serialize_client(client, now)


def list_clients(db: Session) -> List[Dict[str, Any]]:
    now = datetime.utcnow()
    return [_serialize_client(c, now) for c in db.query(models.Client).order_by(models.Client.id).all()]


def get_client(db: Session, client_id: int) -> Dict[str, Any]:
    return _serialize_client(get_client_model(db, client_id))


def update_quote_status(db: Session, client_id: int, status_in: schemas.ClientStatusUpdate) -> Dict[str, Any]:
    client = get_client_model(db, client_id)
    current = schemas.QuoteStatus(client.quote_status)
    target = status_in.quote_status
    if target not in _CLIENT_TRANSITIONS[current]:
        raise InvalidTransitionException(current.value, target.value)
    client.quote_status = target.value
    db.commit()
    db.refresh(client)
    logger.info("Client %s quote status %s -> %s", client_id, current.value, target.value)
    return _serialize_client(client)
