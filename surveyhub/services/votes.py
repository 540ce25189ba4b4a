from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from surveyhub.cache import Cache, analytics_key, survey_key
from surveyhub.database.models import Question, Vote
from surveyhub.database.models.vote import SESSION_ID_MAX_LENGTH
from surveyhub.database.repo import surveys_repo, votes_repo
from surveyhub.database.repo.votes_repo import VoteFilters
from surveyhub.services.errors import DuplicateVote, Forbidden, NotFound, ValidationError
from surveyhub.utils.dt import utcnow
from surveyhub.utils.sanitize import sanitize_input

log = logging.getLogger(__name__)


class VoteNotifier(Protocol):
    def notify_vote(self, survey_id: int, question_id: int) -> None: ...


def _parse_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValidationError(f"{field} must be an integer")


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = sanitize_input(str(value))
    return s or None


@dataclass(frozen=True, slots=True)
class VoteInput:
    survey_token: str
    question_id: int
    session_id: str
    option_id: int | None = None
    answer_text: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_payload(
        cls,
        body: Mapping[str, Any],
        *,
        session_id: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> "VoteInput":
        """
        Sanitizes the raw request body and connection metadata.
        The session falls back to the source address when the client sent none.
        """
        if not isinstance(body, Mapping):
            raise ValidationError("Request body must be a JSON object")
        data = sanitize_input(dict(body))

        survey_token = data.get("survey_token")
        question_id = _parse_id(data.get("question_id"), "question_id")
        if not survey_token or not isinstance(survey_token, str) or question_id is None:
            raise ValidationError("survey_token and question_id are required")

        answer_text = data.get("answer_text")
        if answer_text is not None and not isinstance(answer_text, str):
            raise ValidationError("answer_text must be a string")

        sid = _opt_str(session_id) or _opt_str(ip_address)
        if not sid:
            raise ValidationError("Unable to identify voting session")
        if len(sid) > SESSION_ID_MAX_LENGTH:
            raise ValidationError(f"Session id must be at most {SESSION_ID_MAX_LENGTH} characters")

        return cls(
            survey_token=survey_token,
            question_id=question_id,
            session_id=sid,
            option_id=_parse_id(data.get("option_id"), "option_id"),
            answer_text=answer_text or None,
            ip_address=_opt_str(ip_address),
            user_agent=_opt_str(user_agent),
        )


@dataclass(frozen=True, slots=True)
class VoteReceipt:
    id: int
    question_id: int
    voted_at: datetime


class VoteService:
    """
    Vote ingestion: validate, deduplicate, persist, invalidate, notify.

    The unique constraint on (survey_id, question_id, session_id) is the real
    guard; has_voted() only short-circuits the common case.
    """

    def __init__(self, cache: Cache, notifier: VoteNotifier | None = None) -> None:
        self.cache = cache
        self.notifier = notifier

    @staticmethod
    def _check_shape(question: Question, inp: VoteInput) -> int | None:
        """Returns the option id to store."""
        if not question.question_type.is_choice:
            if not inp.answer_text:
                raise ValidationError("answer_text is required for text questions")
            return None

        if inp.option_id is None:
            raise ValidationError("option_id is required for choice questions")
        return inp.option_id

    async def submit(self, session: AsyncSession, inp: VoteInput) -> VoteReceipt:
        survey = await surveys_repo.get_survey_by_token(session, inp.survey_token)
        if survey is None:
            raise NotFound("Survey not found")

        if not survey.is_active(utcnow()):
            raise Forbidden("Survey is not available")

        # a question of another survey is reported as missing
        question = await surveys_repo.get_question(session, inp.question_id)
        if question is None or question.survey_id != survey.id:
            raise NotFound("Question not found")

        if await votes_repo.has_voted(
            session,
            survey_id=survey.id,
            question_id=question.id,
            session_id=inp.session_id,
        ):
            raise DuplicateVote()

        option_id = self._check_shape(question, inp)
        if option_id is not None:
            option = await surveys_repo.get_option(session, option_id)
            if option is None or option.question_id != question.id:
                raise NotFound("Option not found")

        survey_id = survey.id
        token = survey.token
        question_id = question.id

        vote = Vote(
            survey_id=survey_id,
            question_id=question_id,
            option_id=option_id,
            answer_text=inp.answer_text,
            session_id=inp.session_id,
            ip_address=inp.ip_address,
            user_agent=inp.user_agent,
            voted_at=utcnow(),
        )
        session.add(vote)

        try:
            await session.commit()
        except IntegrityError as e:
            # lost the race against a concurrent submission of the same session
            await session.rollback()
            raise DuplicateVote() from e

        await self.cache.delete(survey_key(token), analytics_key(survey_id))

        if self.notifier is not None:
            self.notifier.notify_vote(survey_id, question_id)

        log.info("Vote stored id=%s survey=%s question=%s", vote.id, survey_id, question_id)
        return VoteReceipt(id=vote.id, question_id=vote.question_id, voted_at=vote.voted_at)

    async def list_votes(self, session: AsyncSession, survey_id: int, filters: VoteFilters) -> dict[str, Any]:
        votes = await votes_repo.list_votes(session, survey_id, filters)
        total = await votes_repo.count_votes(session, survey_id, filters)
        return {
            "votes": [votes_repo.vote_to_dict(v) for v in votes],
            "total": total,
            "limit": filters.limit,
            "offset": filters.offset,
        }
