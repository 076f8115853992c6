# /app/models/opportunity.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    CheckConstraint,
    Index,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.models.enums import OpportunityStatus, OpportunityPriority


def _now():
    return datetime.now(timezone.utc)


_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OpportunityStatus)
_PRIORITY_VALUES = ", ".join(f"'{p.value}'" for p in OpportunityPriority)


class Opportunity(Base):
    """
    A unit of volunteer work with a fixed number of slots.

    current_volunteers is a cache of the active Assignment count; only the
    assignment coordinator writes it, in the same transaction as the ledger row.
    Every UPDATE is guarded by `version` (optimistic concurrency).
    """

    __tablename__ = "opportunities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    tags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OpportunityStatus.open.value,
        server_default=text(f"'{OpportunityStatus.open.value}'"),
    )
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OpportunityPriority.medium.value,
        server_default=text(f"'{OpportunityPriority.medium.value}'"),
    )

    event_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    max_volunteers: Mapped[int] = mapped_column(Integer, nullable=False)
    current_volunteers: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    assignments = relationship(
        "Assignment",
        back_populates="opportunity",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_opportunities_status"),
        CheckConstraint(f"priority IN ({_PRIORITY_VALUES})", name="ck_opportunities_priority"),
        CheckConstraint("max_volunteers >= 1", name="ck_opportunities_max_positive"),
        CheckConstraint("current_volunteers >= 0", name="ck_opportunities_current_nonnegative"),
        CheckConstraint(
            "current_volunteers <= max_volunteers", name="ck_opportunities_within_capacity"
        ),
        CheckConstraint("duration_minutes > 0", name="ck_opportunities_duration_positive"),
        Index("ix_opportunities_status_start", "status", "event_start"),
    )

    @property
    def event_end(self) -> datetime:
        return self.event_start + timedelta(minutes=self.duration_minutes)

    @property
    def is_full(self) -> bool:
        return self.current_volunteers >= self.max_volunteers

    @property
    def open_slots(self) -> int:
        return max(self.max_volunteers - self.current_volunteers, 0)
