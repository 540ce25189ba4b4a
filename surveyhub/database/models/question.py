# surveyhub/database/models/question.py
from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database.base import Base

if TYPE_CHECKING:
    from surveyhub.database.models.option import Option
    from surveyhub.database.models.survey import Survey


class QuestionType(str, enum.Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"

    @property
    def is_choice(self) -> bool:
        return self is not QuestionType.TEXT


class Question(Base):
    __tablename__ = "questions"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        Index("ix_questions_survey_order", "survey_id", "order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    survey_id: Mapped[int] = mapped_column(ForeignKey("surveys.id", ondelete="CASCADE"), index=True)

    question_text: Mapped[str] = mapped_column(String(500))
    question_type: Mapped[QuestionType] = mapped_column(Enum(QuestionType, native_enum=False))

    # display order, not unique
    order: Mapped[int] = mapped_column("order", Integer, default=0)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )

    survey: Mapped["Survey"] = relationship(back_populates="questions")
    options: Mapped[list["Option"]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
