from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from guestbook.db.session import get_db
from guestbook.models.entry import STATUS_APPROVED, STATUS_REJECTED
from guestbook.security import require_admin
from guestbook.services.entries import list_pending, set_status

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# Largest value SQLite can store in an INTEGER column
MAX_ENTRY_ID = 2**63 - 1


class PendingEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    message: str
    status: str
    created_at: str


def parse_entry_id(raw: str | None) -> int | str:
    """Return the positive integer id, or the error text to send back."""
    if raw is None or not raw.strip():
        return "Missing id"
    raw = raw.strip()
    # Plain ASCII digits only; int() would also take "1_000" or fullwidth digits
    if not (raw.isascii() and raw.isdigit()):
        return "Invalid id"
    entry_id = int(raw)
    if entry_id <= 0 or entry_id > MAX_ENTRY_ID:
        return "Invalid id"
    return entry_id


def _moderate(db: Session, raw_id: str | None, status: str, done_text: str) -> PlainTextResponse:
    entry_id = parse_entry_id(raw_id)
    if isinstance(entry_id, str):
        return PlainTextResponse(entry_id, status_code=400)

    set_status(db, entry_id, status)
    return PlainTextResponse(done_text)


@router.get("/pending", response_model=list[PendingEntry])
def admin_pending(db: Session = Depends(get_db)):
    return list_pending(db)


@router.get("/approve", response_class=PlainTextResponse)
def admin_approve(id: str | None = None, db: Session = Depends(get_db)):
    return _moderate(db, id, STATUS_APPROVED, "Approved. You can close this window.")


@router.get("/reject", response_class=PlainTextResponse)
def admin_reject(id: str | None = None, db: Session = Depends(get_db)):
    return _moderate(db, id, STATUS_REJECTED, "Rejected. You can close this window.")
