# surveyhub/database/models/option.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from surveyhub.database.base import Base

if TYPE_CHECKING:
    from surveyhub.database.models.question import Question


class Option(Base):
    __tablename__ = "options"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id", ondelete="CASCADE"), index=True)

    option_text: Mapped[str] = mapped_column(String(255))
    order: Mapped[int] = mapped_column("order", Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    question: Mapped["Question"] = relationship(back_populates="options")
