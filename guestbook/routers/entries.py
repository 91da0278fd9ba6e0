from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import Session

from guestbook.db.session import get_db
from guestbook.models.entry import MESSAGE_MAX_LENGTH, NAME_MAX_LENGTH
from guestbook.services.entries import clean_text, insert_entry, list_approved, now_iso
from guestbook.services.notifications import NewEntry, notify_new_entry
from guestbook.settings import Settings, get_app_settings

router = APIRouter(prefix="/api", tags=["entries"])

MISSING_FIELDS_ERROR = "Name and message are required."


class EntrySubmission(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    message: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, v: object) -> str:
        return clean_text(v, NAME_MAX_LENGTH)

    @field_validator("message", mode="before")
    @classmethod
    def _clean_message(cls, v: object) -> str:
        return clean_text(v, MESSAGE_MAX_LENGTH)


class PublicEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    message: str
    created_at: str


@router.get("/entries", response_model=list[PublicEntry])
def entries_list(db: Session = Depends(get_db)):
    return list_approved(db)


@router.post("/entries")
def entries_submit(
    payload: EntrySubmission,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not payload.name or not payload.message:
        return JSONResponse({"ok": False, "error": MISSING_FIELDS_ERROR}, status_code=400)

    created_at = now_iso()
    entry_id = insert_entry(db, payload.name, payload.message, created_at)

    # Runs after the response is sent; failures only show up in the log
    background_tasks.add_task(
        notify_new_entry,
        settings,
        NewEntry(id=entry_id, name=payload.name, message=payload.message, created_at=created_at),
    )
    return {"ok": True, "id": entry_id}
