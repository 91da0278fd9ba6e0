from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import cast

from sqlalchemy import update
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

from guestbook.models.entry import ENTRY_STATUSES, STATUS_APPROVED, STATUS_PENDING, Entry

log = logging.getLogger(__name__)

PUBLIC_LIST_LIMIT = 50

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(value: object, max_len: int) -> str:
    """Trim, collapse whitespace runs to one space and cut to max_len.

    Returns an empty string for missing or blank input, which callers treat
    as a missing field.
    """
    if value is None:
        return ""
    s = str(value).strip()
    if not s:
        return ""
    return _WHITESPACE_RE.sub(" ", s)[:max_len]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def insert_entry(db: Session, name: str, message: str, created_at: str) -> int:
    entry = Entry(name=name, message=message, status=STATUS_PENDING, created_at=created_at)
    db.add(entry)
    db.commit()
    return entry.id


def get_entry(db: Session, entry_id: int) -> Entry | None:
    return db.get(Entry, entry_id)


def list_approved(db: Session, limit: int = PUBLIC_LIST_LIMIT) -> list[Entry]:
    return (
        db.query(Entry)
        .filter(Entry.status == STATUS_APPROVED)
        .order_by(Entry.id.desc())
        .limit(limit)
        .all()
    )


def list_pending(db: Session) -> list[Entry]:
    return db.query(Entry).filter(Entry.status == STATUS_PENDING).order_by(Entry.id.desc()).all()


def set_status(db: Session, entry_id: int, status: str) -> bool:
    """Move an entry to ``status``.

    Unknown ids and unchanged statuses are silently ignored. Any status can be
    overwritten by any other, so an approve after a reject publishes the entry.
    Returns True when a row actually changed.
    """
    if status not in ENTRY_STATUSES:
        raise ValueError(f"Unknown entry status: {status!r}")

    result = cast(
        CursorResult,
        db.execute(
            update(Entry)
            .where(Entry.id == entry_id, Entry.status != status)
            .values(status=status)
        ),
    )
    db.commit()

    changed = (result.rowcount or 0) > 0
    if changed:
        log.info(f"Entry #{entry_id} set to {status}")
    return changed
