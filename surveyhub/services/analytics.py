from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.cache import Cache, analytics_key
from surveyhub.database.repo import analytics_repo, surveys_repo
from surveyhub.services.errors import NotFound
from surveyhub.utils.dt import utcnow


class AnalyticsService:
    """
    Dashboard read side. Only the realtime payload is cached; the other
    reports are computed on every call.
    """

    def __init__(self, cache: Cache, *, ttl_seconds: int = 30) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def _question_aggregates(self, session: AsyncSession, survey_id: int) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for q in await surveys_repo.list_questions(session, survey_id):
            rows = await analytics_repo.question_aggregate(session, q.id)
            out.append(
                {
                    "question_id": q.id,
                    "question_text": q.question_text,
                    "question_type": q.question_type.value,
                    "aggregates": [asdict(r) for r in rows],
                }
            )
        return out

    async def realtime(self, session: AsyncSession, survey_id: int) -> dict[str, Any]:
        key = analytics_key(survey_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached

        survey = await surveys_repo.get_survey(session, survey_id)
        if survey is None:
            raise NotFound("Survey not found")

        result = {
            "survey_id": survey.id,
            "survey_title": survey.title,
            "total_votes": await analytics_repo.total_votes(session, survey.id),
            "questions": await self._question_aggregates(session, survey.id),
            "time_series": [asdict(b) for b in await analytics_repo.time_series(session, survey.id)],
            "updated_at": utcnow(),
        }

        await self.cache.set_json(key, result, self.ttl_seconds)
        return result

    async def aggregate(
        self,
        session: AsyncSession,
        survey_id: int,
        *,
        question_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        if question_id is not None:
            rows = await analytics_repo.question_aggregate(session, question_id)
            return {"question_id": question_id, "aggregates": [asdict(r) for r in rows]}

        series = await analytics_repo.time_series(session, survey_id, start, end)
        return {
            "survey_id": survey_id,
            "questions": await self._question_aggregates(session, survey_id),
            "time_series": [asdict(b) for b in series],
        }

    async def crosstab(self, session: AsyncSession, question_id1: int, question_id2: int) -> dict[str, Any]:
        rows = await analytics_repo.cross_tabulation(session, question_id1, question_id2)
        return {
            "question_id1": question_id1,
            "question_id2": question_id2,
            "cross_tabulation": [asdict(r) for r in rows],
        }

    async def heatmap(self, session: AsyncSession, survey_id: int, question_id: int) -> dict[str, Any]:
        cells = await analytics_repo.heatmap(session, survey_id, question_id)
        return {
            "survey_id": survey_id,
            "question_id": question_id,
            "heatmap_data": [asdict(c) for c in cells],
        }
