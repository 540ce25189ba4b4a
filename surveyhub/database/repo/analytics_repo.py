from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from surveyhub.database.models import Option, Vote
from surveyhub.utils.dt import parse_hour_bucket


# ------------------------
# Row DTOs
# ------------------------

@dataclass(frozen=True, slots=True)
class OptionAggregate:
    option_id: int | None
    option_text: str | None
    count: int
    percentage: float


@dataclass(frozen=True, slots=True)
class TimeBucket:
    hour: datetime
    count: int


@dataclass(frozen=True, slots=True)
class CrossTabRow:
    option1_id: int | None
    option1_text: str | None
    option2_id: int | None
    option2_text: str | None
    count: int


@dataclass(frozen=True, slots=True)
class HeatmapCell:
    hour: datetime
    option_id: int | None
    option_text: str | None
    count: int


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count * 100 / total, 2)


def _hour_bucket(session: AsyncSession, column):
    """
    Truncate a timestamp to the hour.
    Literal format arguments keep SELECT and GROUP BY textually identical on PostgreSQL.
    """
    if session.bind.dialect.name == "sqlite":
        return func.strftime(literal_column("'%Y-%m-%d %H:00:00'"), column)
    return func.date_trunc(literal_column("'hour'"), column)


# ------------------------
# Totals
# ------------------------

async def total_votes(session: AsyncSession, survey_id: int) -> int:
    res = await session.execute(select(func.count(Vote.id)).where(Vote.survey_id == survey_id))
    return int(res.scalar() or 0)


async def question_total(session: AsyncSession, question_id: int) -> int:
    res = await session.execute(select(func.count(Vote.id)).where(Vote.question_id == question_id))
    return int(res.scalar() or 0)


# ------------------------
# Per-question aggregate
# ------------------------

async def question_aggregate(session: AsyncSession, question_id: int) -> list[OptionAggregate]:
    """
    Count/percentage per option of one question.

    Every option is listed (zero counts included); votes without an option
    (text answers) land in a single None bucket. The denominator is the
    question's own vote count. Sorted by count desc, ties keep option order.
    """
    res = await session.execute(
        select(Vote.option_id, func.count(Vote.id))
        .where(Vote.question_id == question_id)
        .group_by(Vote.option_id)
    )
    counts: dict[int | None, int] = {option_id: int(n or 0) for option_id, n in res.all()}
    total = sum(counts.values())

    res = await session.execute(
        select(Option.id, Option.option_text)
        .where(Option.question_id == question_id)
        .order_by(Option.order.asc(), Option.id.asc())
    )

    rows: list[OptionAggregate] = []
    for option_id, option_text in res.all():
        n = counts.pop(option_id, 0)
        rows.append(
            OptionAggregate(
                option_id=int(option_id),
                option_text=option_text,
                count=n,
                percentage=percentage(n, total),
            )
        )

    # None bucket, plus anything pointing at an option of another question
    for option_id, n in counts.items():
        rows.append(
            OptionAggregate(
                option_id=option_id,
                option_text=None,
                count=n,
                percentage=percentage(n, total),
            )
        )

    rows.sort(key=lambda r: -r.count)
    return rows


# ------------------------
# Time series / heatmap
# ------------------------

async def time_series(
    session: AsyncSession,
    survey_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[TimeBucket]:
    hour = _hour_bucket(session, Vote.voted_at).label("hour")

    stmt = select(hour, func.count(Vote.id).label("count")).where(Vote.survey_id == survey_id)
    if start is not None:
        stmt = stmt.where(Vote.voted_at >= start)
    if end is not None:
        stmt = stmt.where(Vote.voted_at <= end)
    stmt = stmt.group_by(hour).order_by(hour.asc())

    res = await session.execute(stmt)
    return [TimeBucket(hour=parse_hour_bucket(h), count=int(n or 0)) for h, n in res.all()]


async def heatmap(session: AsyncSession, survey_id: int, question_id: int) -> list[HeatmapCell]:
    hour = _hour_bucket(session, Vote.voted_at).label("hour")

    stmt = (
        select(hour, Vote.option_id, Option.option_text, func.count(Vote.id).label("count"))
        .select_from(Vote)
        .outerjoin(Option, Vote.option_id == Option.id)
        .where(Vote.survey_id == survey_id, Vote.question_id == question_id)
        .group_by(hour, Vote.option_id, Option.option_text)
        .order_by(hour.asc(), Vote.option_id.asc())
    )
    res = await session.execute(stmt)
    return [
        HeatmapCell(
            hour=parse_hour_bucket(h),
            option_id=option_id,
            option_text=option_text,
            count=int(n or 0),
        )
        for h, option_id, option_text, n in res.all()
    ]


# ------------------------
# Cross tabulation
# ------------------------

async def cross_tabulation(session: AsyncSession, question_id1: int, question_id2: int) -> list[CrossTabRow]:
    """
    Pairs answers to two questions given by the same session within the same survey.
    Questions from different surveys simply produce no rows.
    """
    v1 = aliased(Vote)
    v2 = aliased(Vote)
    o1 = aliased(Option)
    o2 = aliased(Option)

    n = func.count(v1.id).label("count")
    stmt = (
        select(v1.option_id, o1.option_text, v2.option_id, o2.option_text, n)
        .select_from(v1)
        .join(v2, and_(v1.survey_id == v2.survey_id, v1.session_id == v2.session_id))
        .outerjoin(o1, v1.option_id == o1.id)
        .outerjoin(o2, v2.option_id == o2.id)
        .where(v1.question_id == question_id1, v2.question_id == question_id2)
        .group_by(v1.option_id, o1.option_text, v2.option_id, o2.option_text)
        .order_by(n.desc(), v1.option_id.asc(), v2.option_id.asc())
    )
    res = await session.execute(stmt)
    return [
        CrossTabRow(
            option1_id=a_id,
            option1_text=a_text,
            option2_id=b_id,
            option2_text=b_text,
            count=int(c or 0),
        )
        for a_id, a_text, b_id, b_text, c in res.all()
    ]
