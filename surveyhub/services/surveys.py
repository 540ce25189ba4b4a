from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.cache import Cache, survey_key
from surveyhub.database.models import Option, Question, Survey
from surveyhub.database.repo import surveys_repo
from surveyhub.services.errors import Forbidden, NotFound
from surveyhub.utils.dt import utcnow

log = logging.getLogger(__name__)


def survey_to_dict(s: Survey) -> dict[str, Any]:
    return {
        "id": s.id,
        "token": s.token,
        "title": s.title,
        "description": s.description,
        "status": s.status.value,
        "start_date": s.start_date,
        "end_date": s.end_date,
        "created_at": s.created_at,
        "updated_at": s.updated_at,
    }


def question_to_dict(q: Question, options: list[Option]) -> dict[str, Any]:
    return {
        "id": q.id,
        "survey_id": q.survey_id,
        "question_text": q.question_text,
        "question_type": q.question_type.value,
        "order": q.order,
        "is_required": q.is_required,
        "options": [
            {"id": o.id, "question_id": o.question_id, "option_text": o.option_text, "order": o.order}
            for o in options
        ],
    }


class SurveyService:
    """
    Read path for the public survey page plus the admin writes that must
    drop the token-scoped cache entry.
    """

    def __init__(self, cache: Cache, *, ttl_seconds: int = 3600) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def public_payload(self, session: AsyncSession, token: str) -> dict[str, Any]:
        key = survey_key(token)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached

        survey = await surveys_repo.get_survey_by_token(session, token)
        if survey is None:
            raise NotFound("Survey not found")
        if not survey.is_active(utcnow()):
            raise Forbidden("Survey is not available")

        questions = await surveys_repo.list_questions(session, survey.id)
        options = await surveys_repo.list_options_for_questions(session, [q.id for q in questions])

        payload = survey_to_dict(survey)
        payload["questions"] = [question_to_dict(q, options[q.id]) for q in questions]

        await self.cache.set_json(key, payload, self.ttl_seconds)
        return payload

    async def update(self, session: AsyncSession, survey_id: int, **fields: Any) -> Survey:
        survey = await surveys_repo.update_survey(session, survey_id, **fields)
        if survey is None:
            raise NotFound("Survey not found")
        await session.commit()
        await self.cache.delete(survey_key(survey.token))
        return survey

    async def delete(self, session: AsyncSession, survey_id: int) -> None:
        survey = await surveys_repo.get_survey(session, survey_id)
        if survey is None:
            raise NotFound("Survey not found")
        token = survey.token
        await surveys_repo.delete_survey(session, survey_id)
        await session.commit()
        await self.cache.delete(survey_key(token))

    async def regenerate_token(self, session: AsyncSession, survey_id: int) -> Survey:
        survey = await surveys_repo.get_survey(session, survey_id)
        if survey is None:
            raise NotFound("Survey not found")
        old_token = survey.token
        survey = await surveys_repo.regenerate_token(session, survey_id)
        await session.commit()
        await self.cache.delete(survey_key(old_token))
        log.info("Regenerated token survey_id=%s", survey_id)
        return survey
