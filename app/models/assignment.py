#app/models/assignment.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Assignment(Base):
    """
    One volunteer's claim on one slot.
    - Append-only history: leaving flips `active` off, re-joining inserts a new row
    - At most one active row per (opportunity_id, volunteer_id)
    """

    __tablename__ = "assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("opportunities.id", ondelete="CASCADE"),
        nullable=False,
    )
    volunteer_id: Mapped[str] = mapped_column(String(128), nullable=False)

    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    opportunity = relationship("Opportunity", back_populates="assignments")

    __table_args__ = (
        Index(
            "uq_assignments_one_active",
            "opportunity_id",
            "volunteer_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
        Index("ix_assignments_opportunity_active", "opportunity_id", "active"),
        Index("ix_assignments_volunteer_active", "volunteer_id", "active"),
    )
