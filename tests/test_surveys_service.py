from __future__ import annotations

from datetime import timedelta

import pytest

from surveyhub.cache import survey_key
from surveyhub.database.models import SurveyStatus
from surveyhub.services.errors import Forbidden, NotFound
from surveyhub.services.surveys import SurveyService
from surveyhub.utils.dt import utcnow
from tests.conftest import seed_survey


async def test_public_payload_is_cached(db, cache, seeded):
    service = SurveyService(cache)

    async with db.session() as s:
        payload = await service.public_payload(s, "abc123")

    assert payload["status"] == "published"
    assert [q["question_type"] for q in payload["questions"]] == ["single_choice", "text"]
    assert payload["questions"][1]["options"] == []

    cached = await cache.get_json(survey_key("abc123"))
    assert cached["id"] == payload["id"]
    assert cached["questions"][0]["options"][0]["option_text"] == "Yes"


async def test_public_payload_refuses_inactive(db, cache):
    await seed_survey(db, status=SurveyStatus.DRAFT)
    await seed_survey(db, token="late", start_date=utcnow() + timedelta(days=1), id_offset=100)
    service = SurveyService(cache)

    async with db.session() as s:
        with pytest.raises(Forbidden):
            await service.public_payload(s, "abc123")
        with pytest.raises(Forbidden):
            await service.public_payload(s, "late")
        with pytest.raises(NotFound):
            await service.public_payload(s, "nope")

    assert await cache.get_json(survey_key("abc123")) is None


async def test_writes_drop_cached_payload(db, cache, seeded):
    service = SurveyService(cache)
    async with db.session() as s:
        await service.public_payload(s, "abc123")

    async with db.session() as s:
        survey = await service.update(s, seeded.survey_id, title="Renamed")
    assert survey.title == "Renamed"
    assert await cache.get_json(survey_key("abc123")) is None

    async with db.session() as s:
        payload = await service.public_payload(s, "abc123")
    assert payload["title"] == "Renamed"


async def test_regenerate_token_drops_old_key(db, cache, seeded):
    service = SurveyService(cache)
    async with db.session() as s:
        await service.public_payload(s, "abc123")

    async with db.session() as s:
        survey = await service.regenerate_token(s, seeded.survey_id)

    assert survey.token != "abc123"
    assert len(survey.token) == 12
    assert await cache.get_json(survey_key("abc123")) is None

    async with db.session() as s:
        with pytest.raises(NotFound):
            await service.public_payload(s, "abc123")
        assert (await service.public_payload(s, survey.token))["id"] == seeded.survey_id


async def test_delete_cascades_and_drops_cache(db, cache, seeded):
    service = SurveyService(cache)
    async with db.session() as s:
        await service.public_payload(s, "abc123")
        await service.delete(s, seeded.survey_id)

    assert await cache.get_json(survey_key("abc123")) is None
    async with db.session() as s:
        with pytest.raises(NotFound):
            await service.delete(s, seeded.survey_id)
