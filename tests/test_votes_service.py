from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import Text, func, select

from surveyhub.cache import analytics_key, survey_key
from surveyhub.database.models import SurveyStatus, Vote
from surveyhub.database.models.vote import SESSION_ID_MAX_LENGTH
from surveyhub.database.repo import analytics_repo, votes_repo
from surveyhub.services.errors import DuplicateVote, Forbidden, NotFound, ValidationError
from surveyhub.services.votes import VoteInput, VoteService
from surveyhub.utils.dt import utcnow
from tests.conftest import RecordingNotifier, seed_survey


def _input(token="abc123", question_id=1, session_id="s1", **kw) -> VoteInput:
    return VoteInput(survey_token=token, question_id=question_id, session_id=session_id, **kw)


async def _vote_count(db) -> int:
    async with db.session() as s:
        res = await s.execute(select(func.count(Vote.id)))
        return int(res.scalar() or 0)


async def test_vote_then_duplicate_keeps_aggregate(db, cache, seeded):
    service = VoteService(cache)

    async with db.session() as s:
        receipt = await service.submit(s, _input(option_id=seeded.yes_option_id))
    assert receipt.question_id == seeded.choice_question_id
    assert receipt.id > 0

    async with db.session() as s:
        first = await analytics_repo.question_aggregate(s, seeded.choice_question_id)

    assert [(r.option_id, r.count, r.percentage) for r in first] == [
        (10, 1, 100.0),
        (11, 0, 0.0),
    ]

    async with db.session() as s:
        with pytest.raises(DuplicateVote):
            await service.submit(s, _input(option_id=seeded.yes_option_id))

    async with db.session() as s:
        again = await analytics_repo.question_aggregate(s, seeded.choice_question_id)
    assert again == first
    assert await _vote_count(db) == 1


async def test_concurrent_submissions_store_one_row(db, cache, seeded):
    service = VoteService(cache)

    async def attempt():
        async with db.session() as s:
            return await service.submit(s, _input(option_id=seeded.no_option_id))

    results = await asyncio.gather(*(attempt() for _ in range(10)), return_exceptions=True)

    ok = [r for r in results if not isinstance(r, BaseException)]
    dupes = [r for r in results if isinstance(r, DuplicateVote)]
    assert len(ok) == 1
    assert len(dupes) == 9
    assert await _vote_count(db) == 1


async def test_unique_constraint_backs_the_precheck(db, cache, seeded, monkeypatch):
    async def never_voted(*args, **kwargs):
        return False

    monkeypatch.setattr(votes_repo, "has_voted", never_voted)
    service = VoteService(cache)

    async with db.session() as s:
        await service.submit(s, _input(option_id=seeded.yes_option_id))
    async with db.session() as s:
        with pytest.raises(DuplicateVote):
            await service.submit(s, _input(option_id=seeded.no_option_id))

    assert await _vote_count(db) == 1


@pytest.mark.parametrize(
    "status,start_delta,end_delta",
    [
        (SurveyStatus.DRAFT, None, None),
        (SurveyStatus.CLOSED, None, None),
        (SurveyStatus.PUBLISHED, timedelta(hours=1), None),
        (SurveyStatus.PUBLISHED, None, timedelta(hours=-1)),
    ],
)
async def test_inactive_survey_is_forbidden(db, cache, status, start_delta, end_delta):
    now = utcnow()
    await seed_survey(
        db,
        status=status,
        start_date=now + start_delta if start_delta else None,
        end_date=now + end_delta if end_delta else None,
    )
    service = VoteService(cache)

    async with db.session() as s:
        with pytest.raises(Forbidden):
            await service.submit(s, _input(option_id=10))

    assert await _vote_count(db) == 0


async def test_survey_inside_window_accepts_votes(db, cache):
    now = utcnow()
    await seed_survey(db, start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))

    async with db.session() as s:
        await VoteService(cache).submit(s, _input(option_id=10))
    assert await _vote_count(db) == 1


async def test_unknown_token_is_not_found(db, cache, seeded):
    async with db.session() as s:
        with pytest.raises(NotFound, match="Survey not found"):
            await VoteService(cache).submit(s, _input(token="nope", option_id=10))


async def test_question_of_other_survey_is_not_found(db, cache, seeded):
    other = await seed_survey(db, token="other1", id_offset=100)

    async with db.session() as s:
        with pytest.raises(NotFound, match="Question not found"):
            await VoteService(cache).submit(s, _input(question_id=other.choice_question_id, option_id=other.yes_option_id))


async def test_option_of_other_question_is_not_found(db, cache, seeded):
    other = await seed_survey(db, token="other1", id_offset=100)

    async with db.session() as s:
        with pytest.raises(NotFound, match="Option not found"):
            await VoteService(cache).submit(s, _input(option_id=other.yes_option_id))
    assert await _vote_count(db) == 0


async def test_required_text_with_empty_answer_is_rejected(db, cache, seeded):
    inp = VoteInput.from_payload(
        {"survey_token": "abc123", "question_id": seeded.text_question_id, "answer_text": "   "},
        session_id="s1",
        ip_address="127.0.0.1",
        user_agent=None,
    )
    assert inp.answer_text is None

    async with db.session() as s:
        with pytest.raises(ValidationError):
            await VoteService(cache).submit(s, inp)
    assert await _vote_count(db) == 0


async def test_choice_question_requires_option(db, cache, seeded):
    async with db.session() as s:
        with pytest.raises(ValidationError, match="option_id"):
            await VoteService(cache).submit(s, _input())


async def test_text_vote_stores_answer_without_option(db, cache, seeded):
    async with db.session() as s:
        await VoteService(cache).submit(
            s, _input(question_id=seeded.text_question_id, answer_text="nice", option_id=10)
        )

    async with db.session() as s:
        vote = (await s.execute(select(Vote))).scalar_one()
    assert vote.option_id is None
    assert vote.answer_text == "nice"


async def test_vote_invalidates_both_cache_keys(db, cache, seeded):
    await cache.set_json(survey_key("abc123"), {"stale": True}, 3600)
    await cache.set_json(analytics_key(seeded.survey_id), {"stale": True}, 30)

    async with db.session() as s:
        await VoteService(cache).submit(s, _input(option_id=10))

    assert await cache.get_json(survey_key("abc123")) is None
    assert await cache.get_json(analytics_key(seeded.survey_id)) is None


async def test_notifier_runs_only_for_committed_votes(db, cache, seeded):
    notifier = RecordingNotifier()
    service = VoteService(cache, notifier=notifier)

    async with db.session() as s:
        await service.submit(s, _input(option_id=10))
    async with db.session() as s:
        with pytest.raises(DuplicateVote):
            await service.submit(s, _input(option_id=10))

    assert notifier.calls == [(seeded.survey_id, seeded.choice_question_id)]


def test_from_payload_sanitizes_and_falls_back_to_ip():
    inp = VoteInput.from_payload(
        {"survey_token": "  abc123 ", "question_id": "1", "answer_text": " <b>hi</b> "},
        session_id=None,
        ip_address="10.0.0.1",
        user_agent="<script>",
    )
    assert inp.survey_token == "abc123"
    assert inp.question_id == 1
    assert inp.answer_text == "&lt;b&gt;hi&lt;/b&gt;"
    assert inp.session_id == "10.0.0.1"
    assert inp.user_agent == "&lt;script&gt;"


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"survey_token": "abc123"},
        {"question_id": 1},
        {"survey_token": "", "question_id": 1},
        {"survey_token": "abc123", "question_id": "one"},
        {"survey_token": "abc123", "question_id": 1, "option_id": "x"},
    ],
)
def test_from_payload_rejects_bad_bodies(body):
    with pytest.raises(ValidationError):
        VoteInput.from_payload(body, session_id="s1", ip_address=None, user_agent=None)


def test_from_payload_rejects_overlong_session_id():
    # escaping grows "&" to "&amp;", the limit applies to the stored value
    with pytest.raises(ValidationError, match="Session id"):
        VoteInput.from_payload(
            {"survey_token": "abc123", "question_id": 1, "option_id": 10},
            session_id="&" * 60,
            ip_address="10.0.0.1",
            user_agent=None,
        )

    inp = VoteInput.from_payload(
        {"survey_token": "abc123", "question_id": 1, "option_id": 10},
        session_id="s" * SESSION_ID_MAX_LENGTH,
        ip_address="10.0.0.1",
        user_agent=None,
    )
    assert len(inp.session_id) == SESSION_ID_MAX_LENGTH


async def test_long_user_agent_is_stored_whole(db, cache, seeded):
    inp = VoteInput.from_payload(
        {"survey_token": "abc123", "question_id": 1, "option_id": 10},
        session_id="s1",
        ip_address="10.0.0.1",
        user_agent="Mozilla/5.0 & " * 80,
    )
    async with db.session() as s:
        await VoteService(cache).submit(s, inp)

    async with db.session() as s:
        vote = (await s.execute(select(Vote))).scalar_one()
    assert len(vote.user_agent) > 1000
    assert isinstance(Vote.__table__.c.user_agent.type, Text)
    assert Vote.__table__.c.session_id.type.length == SESSION_ID_MAX_LENGTH
