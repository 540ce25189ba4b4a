from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.database.models import Vote


@dataclass(frozen=True, slots=True)
class VoteFilters:
    limit: int = 100
    offset: int = 0
    question_id: int | None = None
    search: str | None = None
    date_from: datetime | None = None
    # callers pass end-of-day for bare dates
    date_to: datetime | None = None


def _apply_filters(stmt: Select, survey_id: int, filters: VoteFilters) -> Select:
    stmt = stmt.where(Vote.survey_id == survey_id)

    if filters.question_id is not None:
        stmt = stmt.where(Vote.question_id == filters.question_id)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                Vote.answer_text.ilike(pattern),
                Vote.session_id.ilike(pattern),
                Vote.ip_address.ilike(pattern),
            )
        )

    if filters.date_from is not None:
        stmt = stmt.where(Vote.voted_at >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(Vote.voted_at <= filters.date_to)

    return stmt


async def has_voted(session: AsyncSession, *, survey_id: int, question_id: int, session_id: str) -> bool:
    stmt = select(func.count(Vote.id)).where(
        Vote.survey_id == survey_id,
        Vote.question_id == question_id,
        Vote.session_id == session_id,
    )
    res = await session.execute(stmt)
    return int(res.scalar() or 0) > 0


async def list_votes(session: AsyncSession, survey_id: int, filters: VoteFilters) -> list[Vote]:
    stmt = _apply_filters(select(Vote), survey_id, filters)
    stmt = stmt.order_by(Vote.voted_at.desc(), Vote.id.desc())
    if filters.limit:
        stmt = stmt.limit(filters.limit)
    if filters.offset:
        stmt = stmt.offset(filters.offset)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def count_votes(session: AsyncSession, survey_id: int, filters: VoteFilters) -> int:
    stmt = _apply_filters(select(func.count(Vote.id)), survey_id, filters)
    res = await session.execute(stmt)
    return int(res.scalar() or 0)


def vote_to_dict(v: Vote) -> dict:
    return {
        "id": v.id,
        "survey_id": v.survey_id,
        "question_id": v.question_id,
        "option_id": v.option_id,
        "answer_text": v.answer_text,
        "session_id": v.session_id,
        "ip_address": v.ip_address,
        "user_agent": v.user_agent,
        "voted_at": v.voted_at,
        "created_at": v.created_at,
    }
