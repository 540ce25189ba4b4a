from __future__ import annotations

import secrets
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.database.models import Option, Question, QuestionType, Survey, SurveyStatus


TOKEN_BYTES = 6  # 12 hex chars

_SURVEY_FIELDS = {"title", "description", "status", "start_date", "end_date"}


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


# ------------------------
# Surveys
# ------------------------

async def create_survey(
    session: AsyncSession,
    *,
    title: str,
    description: str | None = None,
    status: SurveyStatus = SurveyStatus.DRAFT,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    created_by: int | None = None,
    token: str | None = None,
) -> Survey:
    survey = Survey(
        token=token or generate_token(),
        title=title,
        description=description,
        status=SurveyStatus(status),
        start_date=start_date,
        end_date=end_date,
        created_by=created_by,
    )
    session.add(survey)
    await session.flush()
    return survey


async def get_survey(session: AsyncSession, survey_id: int) -> Survey | None:
    return await session.get(Survey, survey_id)


async def get_survey_by_token(session: AsyncSession, token: str) -> Survey | None:
    res = await session.execute(select(Survey).where(Survey.token == token))
    return res.scalar_one_or_none()


async def update_survey(session: AsyncSession, survey_id: int, **fields: Any) -> Survey | None:
    unknown = set(fields) - _SURVEY_FIELDS
    if unknown:
        raise ValueError(f"Unknown survey fields: {sorted(unknown)}")

    survey = await get_survey(session, survey_id)
    if survey is None:
        return None

    for key, value in fields.items():
        if key == "status" and value is not None:
            value = SurveyStatus(value)
        setattr(survey, key, value)
    await session.flush()
    return survey


async def delete_survey(session: AsyncSession, survey_id: int) -> bool:
    res = await session.execute(delete(Survey).where(Survey.id == survey_id))
    return (res.rowcount or 0) > 0


async def regenerate_token(session: AsyncSession, survey_id: int) -> Survey | None:
    survey = await get_survey(session, survey_id)
    if survey is None:
        return None
    survey.token = generate_token()
    await session.flush()
    return survey


async def list_ended_between(
    session: AsyncSession,
    start: datetime,
    end: datetime,
    limit: int = 500,
) -> list[Survey]:
    """Surveys whose end_date falls in (start, end]. Status is not touched."""
    stmt = (
        select(Survey)
        .where(
            Survey.end_date.is_not(None),
            Survey.end_date > start,
            Survey.end_date <= end,
        )
        .order_by(Survey.end_date.asc())
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


# ------------------------
# Questions / options
# ------------------------

async def create_question(
    session: AsyncSession,
    *,
    survey_id: int,
    question_text: str,
    question_type: QuestionType,
    order: int = 0,
    is_required: bool = False,
) -> Question:
    question = Question(
        survey_id=survey_id,
        question_text=question_text,
        question_type=QuestionType(question_type),
        order=order,
        is_required=is_required,
    )
    session.add(question)
    await session.flush()
    return question


async def get_question(session: AsyncSession, question_id: int) -> Question | None:
    return await session.get(Question, question_id)


async def list_questions(session: AsyncSession, survey_id: int) -> list[Question]:
    stmt = (
        select(Question)
        .where(Question.survey_id == survey_id)
        .order_by(Question.order.asc(), Question.id.asc())
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def create_option(session: AsyncSession, *, question_id: int, option_text: str, order: int = 0) -> Option:
    option = Option(question_id=question_id, option_text=option_text, order=order)
    session.add(option)
    await session.flush()
    return option


async def get_option(session: AsyncSession, option_id: int) -> Option | None:
    return await session.get(Option, option_id)


async def list_options_for_questions(session: AsyncSession, question_ids: list[int]) -> dict[int, list[Option]]:
    """One query for all questions of a survey, grouped by question id."""
    out: dict[int, list[Option]] = {qid: [] for qid in question_ids}
    if not question_ids:
        return out

    stmt = (
        select(Option)
        .where(Option.question_id.in_(question_ids))
        .order_by(Option.question_id.asc(), Option.order.asc(), Option.id.asc())
    )
    res = await session.execute(stmt)
    for opt in res.scalars().all():
        out[opt.question_id].append(opt)
    return out
