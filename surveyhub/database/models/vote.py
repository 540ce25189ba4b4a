# surveyhub/database/models/vote.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from surveyhub.database.base import Base


SESSION_ID_MAX_LENGTH = 255


class Vote(Base):
    """
    One respondent's answer to one question. Append-only.
    One vote per (survey, question, session) is enforced by the unique constraint,
    the pre-insert check in the service is only a fast path.
    """
    __tablename__ = "votes"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("survey_id", "question_id", "session_id", name="uq_votes_survey_question_session"),
        Index("ix_votes_survey_voted_at", "survey_id", "voted_at"),
        Index("ix_votes_question_option", "question_id", "option_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    survey_id: Mapped[int] = mapped_column(ForeignKey("surveys.id", ondelete="CASCADE"), index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id", ondelete="CASCADE"), index=True)

    # choice questions only
    option_id: Mapped[int | None] = mapped_column(
        ForeignKey("options.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    # text questions only
    answer_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    session_id: Mapped[str] = mapped_column(String(SESSION_ID_MAX_LENGTH), index=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # client-controlled header, unbounded
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
