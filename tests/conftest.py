import os

# Must be set before the app modules read settings
os.environ["SQLALCHEMY_DATABASE_URL"] = "sqlite://"
os.environ["EMBEDDING_DIMENSIONS"] = "8"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["AUTO_CREATE_TABLES"] = "false"

import json
import pytest
from typing import Any, Dict, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api import deps
from app.core.database import Base, get_db
from app.core.exceptions import EmbeddingError
from app.schemas.chat import CompletionMessage
from app.services.document_store import DocumentStore

# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@event.listens_for(engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

DIMENSIONS = 8

SAMPLE_EXTRACTION = {
    "schema": {
        "type": "object",
        "properties": {"doc_type": {"type": "string"}, "person": {"type": "object"}},
    },
    "extracted": {
        "doc_type": "resume",
        "person": {"name": "John Doe", "email": None, "phone": None, "links": []},
        "summary": "Backend engineer",
        "skills": ["Python", "PostgreSQL"],
        "experience": [
            {
                "company": "Acme",
                "title": "Engineer",
                "start_date": "2020",
                "end_date": None,
                "bullets": ["Built APIs"],
            }
        ],
        "education": [],
        "raw_highlights": ["Built APIs"],
    },
    "confidence": {"doc_type": 0.9, "person": {"name": 0.95}},
}


class FakeLLMService:
    """In-process stand-in for the completion API."""

    def __init__(self, json_content: Optional[str] = None, chat_responses: Optional[List[Any]] = None):
        self.model = "fake-completion"
        self.json_content = json.dumps(SAMPLE_EXTRACTION) if json_content is None else json_content
        self.chat_responses = list(chat_responses or [])
        self.json_calls: List[Dict[str, str]] = []
        self.chat_calls: List[Dict[str, Any]] = []

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        self.json_calls.append({"system": system_prompt, "user": user_prompt})
        if isinstance(self.json_content, Exception):
            raise self.json_content
        return self.json_content

    async def chat(self, messages, tools=None, tool_choice=None) -> CompletionMessage:
        self.chat_calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        if not self.chat_responses:
            return CompletionMessage(content="Default answer")
        response = self.chat_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        pass


class FakeEmbeddingService:
    """Deterministic embeddings: the vector is derived from the text length."""

    def __init__(self, fail: bool = False):
        self.model = "fake-embedding"
        self.dimensions = DIMENSIONS
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service unavailable", stage="EMBEDDING")
        base = float(len(text) % 10)
        return [base + i for i in range(DIMENSIONS)]

    async def close(self):
        pass


@pytest.fixture(scope="session")
def db_engine():
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db(db_engine):
    connection = db_engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def store(db):
    return DocumentStore(db)

@pytest.fixture(scope="function")
def fake_llm():
    return FakeLLMService()

@pytest.fixture(scope="function")
def fake_embedder():
    return FakeEmbeddingService()

@pytest.fixture(scope="function")
def client(db, fake_llm, fake_embedder):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_llm_service] = lambda: fake_llm
    app.dependency_overrides[deps.get_embedding_service] = lambda: fake_embedder
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
def stored_document(store):
    """A resume-like document with one embedding."""
    return store.create_document(
        filename="resume.txt",
        text="John Doe\nSenior Engineer at Acme\nSkills: Python, PostgreSQL\nEmail hidden",
        discovered_schema=SAMPLE_EXTRACTION["schema"],
        extracted=SAMPLE_EXTRACTION["extracted"],
        confidence={"doc_type": 0.9, "person.name": 0.95},
        vector=[float(i) for i in range(DIMENSIONS)],
    )
