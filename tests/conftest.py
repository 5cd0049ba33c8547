"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from typing import Callable, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only_0123456789")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SURVEYS_DIR", "./tests/does-not-exist")

from fieldsurvey.models.database import Base, enable_sqlite_foreign_keys
from fieldsurvey.models.question import SurveyQuestion
from fieldsurvey.models.survey import Survey
from fieldsurvey.models.user import User, UserRole


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        StaticPool keeps one connection so the in-memory database is shared
        between the test session and the sessions opened by the API.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session.

    Yields:
        Session: SQLAlchemy session for testing
    """
    session = session_factory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    """Factory for persisted users."""
    counter = {"n": 0}

    def _make(
        user_code: str = None,
        role: UserRole = UserRole.SURVEY_USER,
        is_active: bool = True,
        full_name: str = "Asha Devi",
    ) -> User:
        counter["n"] += 1
        user = User(
            user_code=user_code or f"FU-{counter['n']:03d}",
            mobile=f"90000000{counter['n']:02d}",
            full_name=full_name,
            role=role.value,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_survey(db_session) -> Callable[..., Survey]:
    """Factory for persisted surveys."""
    counter = {"n": 0}

    def _make(**overrides) -> Survey:
        counter["n"] += 1
        fields = {
            "survey_code": f"SRV-TEST{counter['n']:04d}",
            "name": f"Household Survey {counter['n']}",
            "status": "ACTIVE",
        }
        fields.update(overrides)
        survey = Survey(**fields)
        db_session.add(survey)
        db_session.commit()
        return survey

    return _make


@pytest.fixture
def make_question(db_session) -> Callable[..., SurveyQuestion]:
    """Factory for persisted questions; keyword arguments map to columns."""

    def _make(survey: Survey, question_text: str, type: str, **fields) -> SurveyQuestion:
        question = SurveyQuestion(
            survey_id=survey.id,
            question_text=question_text,
            type=type,
            **fields,
        )
        db_session.add(question)
        db_session.commit()
        return question

    return _make


@pytest.fixture
def survey_user(make_user) -> User:
    return make_user(user_code="FU-100")


@pytest.fixture
def quality_engineer(make_user) -> User:
    return make_user(user_code="QE-100", role=UserRole.QUALITY_ENGINEER, full_name="Ravi Kumar")
