import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db
from models import Base
from services.llm import get_analysis_model, get_relevance_model, get_summary_model
from services.minio import get_storage
from tests.fakes import ANALYSIS_REPLY, SUMMARY_REPLY, InMemoryStorage


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def relevance_model() -> FakeListChatModel:
    return FakeListChatModel(responses=["NO"])


@pytest.fixture
def analysis_model() -> FakeListChatModel:
    return FakeListChatModel(responses=[ANALYSIS_REPLY])


@pytest.fixture
def summary_model() -> FakeListChatModel:
    return FakeListChatModel(responses=[SUMMARY_REPLY])


@pytest.fixture
def client(
    session_factory: sessionmaker,
    storage: InMemoryStorage,
    relevance_model: FakeListChatModel,
    analysis_model: FakeListChatModel,
    summary_model: FakeListChatModel
) -> Generator[TestClient, None, None]:
    from main import app

    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_relevance_model] = lambda: relevance_model
    app.dependency_overrides[get_analysis_model] = lambda: analysis_model
    app.dependency_overrides[get_summary_model] = lambda: summary_model

    # Lifespan is not entered, so no tables or buckets are created on real services
    yield TestClient(app)

    app.dependency_overrides.clear()
