from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import get_current_user_id
from modules.quotes import schemas
from modules.quotes.service import assign_quote_number, compute_quote, next_quote_number
from modules.reports.excel import build_quote_excel

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.get("/next-number", response_model=schemas.NextQuoteNumberRead)
def get_next_quote_number(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return next_quote_number(db)


@router.post("/orders/{order_id}/number", response_model=schemas.QuoteNumberRead)
def assign_order_quote_number(
    order_id: int,
    number_in: schemas.QuoteNumberAssign,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return assign_quote_number(db, order_id, user_id, number_in)


@router.get("/orders/{order_id}")
def order_quote(
    order_id: int, fresh: bool = False, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    return compute_quote(db, order_id, user_id, fresh=fresh)


@router.get("/orders/{order_id}/excel")
def download_quote_excel(
    order_id: int, fresh: bool = False, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)
):
    quote = compute_quote(db, order_id, user_id, fresh=fresh)
    stream = build_quote_excel(quote)
    reference = quote["header"]["quote_number"] or f"pedido_{order_id}"
    filename = f"orcamento_{reference}.xlsx"
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
