#app/models/feedback.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    Boolean,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


def _now():
    return datetime.now(timezone.utc)


class FeedbackRecord(Base):
    """
    Organization's post-completion feedback for one volunteer.
    Immutable once written; one per (opportunity_id, volunteer_id).
    """

    __tablename__ = "volunteer_feedback"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("opportunities.id", ondelete="CASCADE"),
        nullable=False,
    )
    volunteer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(128), nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    skills: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    areas_of_improvement: Mapped[str] = mapped_column(Text, nullable=False, default="")
    would_work_again: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("opportunity_id", "volunteer_id", name="uq_feedback_opportunity_volunteer"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
        Index("ix_feedback_volunteer", "volunteer_id"),
    )
