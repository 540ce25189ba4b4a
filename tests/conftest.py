from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import fakeredis
import pytest

from surveyhub.cache import Cache
from surveyhub.config import Settings
from surveyhub.database import Database
from surveyhub.database.models import Option, Question, QuestionType, Survey, SurveyStatus, Vote
from surveyhub.realtime import BackgroundTasks, BroadcastHub
from surveyhub.utils.dt import utcnow

TEST_SECRET = "test-secret"


@dataclass(frozen=True)
class SeededSurvey:
    survey_id: int
    token: str
    choice_question_id: int
    yes_option_id: int
    no_option_id: int
    text_question_id: int


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    def notify_vote(self, survey_id: int, question_id: int) -> None:
        self.calls.append((survey_id, question_id))


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def db(database_url):
    database = Database(database_url)
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def cache(redis_client) -> Cache:
    return Cache(redis_client)


@pytest.fixture
async def session(db):
    async with db.session() as s:
        yield s


@pytest.fixture
async def tasks():
    runner = BackgroundTasks()
    yield runner
    await runner.close()


@pytest.fixture
def hub(db, cache, tasks) -> BroadcastHub:
    return BroadcastHub(db, cache, tasks)


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(jwt_secret=TEST_SECRET, database_url=database_url, environment="production")


async def seed_survey(
    db: Database,
    *,
    token: str = "abc123",
    status: SurveyStatus = SurveyStatus.PUBLISHED,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    id_offset: int = 0,
) -> SeededSurvey:
    """
    Survey `token` with question 1 (single choice: 10 "Yes", 11 "No")
    and question 2 (required text). id_offset shifts every id for a second survey.
    """
    async with db.session() as s:
        survey = Survey(
            id=1 + id_offset,
            token=token,
            title=f"Survey {token}",
            status=status,
            start_date=start_date,
            end_date=end_date,
        )
        s.add(survey)
        await s.flush()

        s.add_all(
            [
                Question(
                    id=1 + id_offset,
                    survey_id=survey.id,
                    question_text="Do you like it?",
                    question_type=QuestionType.SINGLE_CHOICE,
                    order=1,
                    is_required=True,
                ),
                Question(
                    id=2 + id_offset,
                    survey_id=survey.id,
                    question_text="Why?",
                    question_type=QuestionType.TEXT,
                    order=2,
                    is_required=True,
                ),
            ]
        )
        await s.flush()
        s.add_all(
            [
                Option(id=10 + id_offset, question_id=1 + id_offset, option_text="Yes", order=1),
                Option(id=11 + id_offset, question_id=1 + id_offset, option_text="No", order=2),
            ]
        )
        await s.commit()

    return SeededSurvey(
        survey_id=1 + id_offset,
        token=token,
        choice_question_id=1 + id_offset,
        yes_option_id=10 + id_offset,
        no_option_id=11 + id_offset,
        text_question_id=2 + id_offset,
    )


@pytest.fixture
async def seeded(db) -> SeededSurvey:
    return await seed_survey(db)


async def add_vote(
    db: Database,
    *,
    survey_id: int,
    question_id: int,
    session_id: str,
    option_id: int | None = None,
    answer_text: str | None = None,
    voted_at: datetime | None = None,
) -> None:
    async with db.session() as s:
        s.add(
            Vote(
                survey_id=survey_id,
                question_id=question_id,
                option_id=option_id,
                answer_text=answer_text,
                session_id=session_id,
                voted_at=voted_at or utcnow(),
            )
        )
        await s.commit()
