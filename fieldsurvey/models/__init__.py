"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from fieldsurvey.models.database import Base, engine, SessionLocal, get_db, init_db
from fieldsurvey.models.user import User, UserRole
from fieldsurvey.models.survey import Survey
from fieldsurvey.models.question import SurveyQuestion
from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.models.help import HelpContent

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "User",
    "UserRole",
    "Survey",
    "SurveyQuestion",
    "SurveyResponse",
    "HelpContent",
]
