# surveyhub/database/models/survey.py
from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database.base import Base

if TYPE_CHECKING:
    from surveyhub.database.models.question import Question


class SurveyStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class Survey(Base):
    """
    Admin-owned survey, reachable publicly through its token.
    Owns its questions (cascade).
    """
    __tablename__ = "surveys"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)

    # public URL token, regenerated on demand
    token: Mapped[str] = mapped_column(String(32), unique=True, index=True)

    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SurveyStatus] = mapped_column(
        Enum(SurveyStatus, native_enum=False),
        default=SurveyStatus.DRAFT,
        index=True,
    )

    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, index=True)

    # admin id from the auth service; no FK, admins live outside this store
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )

    questions: Mapped[list["Question"]] = relationship(
        back_populates="survey",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_active(self, now: datetime) -> bool:
        """Published and inside the optional [start_date, end_date] window."""
        if self.status != SurveyStatus.PUBLISHED:
            return False
        if self.start_date is not None and now < self.start_date:
            return False
        if self.end_date is not None and now > self.end_date:
            return False
        return True
