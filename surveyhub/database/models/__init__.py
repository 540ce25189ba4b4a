from .survey import Survey, SurveyStatus
from .question import Question, QuestionType
from .option import Option
from .vote import Vote

__all__ = [
    "Survey",
    "SurveyStatus",
    "Question",
    "QuestionType",
    "Option",
    "Vote",
]
