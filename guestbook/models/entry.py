from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from guestbook.db.base import Base

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
ENTRY_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

NAME_MAX_LENGTH = 40
MESSAGE_MAX_LENGTH = 400


class Entry(Base):
    __tablename__ = "entries"
    __table_args__ = (
        sa.Index("idx_entries_status_created", "status", "created_at"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_entries_status"
        ),
        # AUTOINCREMENT keeps SQLite from handing out ids of deleted rows again
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(sa.Integer(), primary_key=True)
    name: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    message: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, server_default=sa.text("'pending'")
    )  # pending|approved|rejected
    # ISO-8601 UTC string, e.g. 2026-10-18T08:27:00.123Z
    created_at: Mapped[str] = mapped_column(sa.String(32), nullable=False)
