# surveyhub/scripts/seed_demo_survey.py
from __future__ import annotations

import asyncio
from datetime import timedelta

from surveyhub.config import Settings
from surveyhub.database.models import QuestionType, SurveyStatus
from surveyhub.database.repo import surveys_repo
from surveyhub.database.session import Database
from surveyhub.services.auth import AuthService
from surveyhub.utils.dt import utcnow


async def main() -> None:
    settings = Settings.load()
    db = Database(settings.database_url)
    await db.init_models()

    now = utcnow()

    async with db.session() as session:
        survey = await surveys_repo.create_survey(
            session,
            title="Sample survey",
            description="A demo survey to try voting and the live dashboard.",
            status=SurveyStatus.PUBLISHED,
            start_date=now,
            end_date=now + timedelta(days=30),
            created_by=1,
        )

        q1 = await surveys_repo.create_question(
            session,
            survey_id=survey.id,
            question_text="How easy is this system to use?",
            question_type=QuestionType.SINGLE_CHOICE,
            order=1,
            is_required=True,
        )
        for i, text in enumerate(
            ["Very easy", "Easy", "Neutral", "Hard", "Very hard"],
            start=1,
        ):
            await surveys_repo.create_option(session, question_id=q1.id, option_text=text, order=i)

        await surveys_repo.create_question(
            session,
            survey_id=survey.id,
            question_text="Anything we should improve?",
            question_type=QuestionType.TEXT,
            order=2,
            is_required=False,
        )

        await session.commit()
        token = survey.token

    await db.close()

    admin_token = AuthService(settings.jwt_secret).issue(user_id=1, username="admin", role="admin")
    print("✅ Seeded demo survey.")
    print(f"Survey URL: {settings.public_base_url}/vote/{token}")
    print(f"Admin bearer token: {admin_token}")


if __name__ == "__main__":
    asyncio.run(main())
