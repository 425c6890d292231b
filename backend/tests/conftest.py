"""
Pytest configuration and fixtures for backend tests.
"""

import os
import tempfile

# Settings are read at import time; point them at SQLite before pensive loads.
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.gettempdir(), "pensive-tests.db")
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["SMTP_HOST"] = ""

from datetime import datetime
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from pensive.database import SessionLocal, bind_engine, build_engine, init_db
from pensive.llm import ModelConfig
from pensive.models.content import Content
from pensive.models.source import Source
from pensive.schemas.analysis import AnalysisOutput, AnalysisSummary, DigestOutput, EntityMention
from pensive.services.dedup import ContentDeduplicator
from pensive.services.ingestion.feed_fetcher import FetchResult
from pensive.services.jobs.handlers import PipelineServices
from pensive.services.jobs.store import JobStore, RetryPolicy

USER_ID = "user-1"


@pytest.fixture
def engine(tmp_path):
    """Fresh file-backed SQLite database per test."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'pensive.db'}")
    bind_engine(test_engine)
    init_db()
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine):
    """Session on the test database.

    SQLite takes the write lock on BEGIN, so tests commit after reading
    before handing control to the dispatcher.
    """
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_seconds=60, strategy="exponential")


@pytest.fixture
def store(db, policy) -> JobStore:
    return JobStore(db, policy)


@pytest.fixture
def client(engine):
    from pensive.main import app

    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def reload(db, model, pk):
    """Read a row fresh from the database and release the lock."""
    obj = db.get(model, pk, populate_existing=True)
    db.commit()
    return obj


def make_content(
    db,
    title: str,
    body: str = "",
    user_id: str = USER_ID,
    url: str = "",
    created_at: Optional[datetime] = None,
) -> Content:
    content = Content(
        user_id=user_id,
        title=title,
        url=url,
        body=body or f"Body of {title}",
        source="manual",
        fingerprint=ContentDeduplicator.fingerprint([url, body or f"Body of {title}", title]),
    )
    if created_at is not None:
        content.created_at = created_at
    db.add(content)
    db.commit()
    return content


def make_source(db, url: str = "https://example.com/feed.xml", user_id: str = USER_ID, **kwargs) -> Source:
    source = Source(user_id=user_id, url=url, name=kwargs.pop("name", "Example Feed"), **kwargs)
    db.add(source)
    db.commit()
    return source


def analysis_output(*entity_names: str, short: str = "Short summary") -> AnalysisOutput:
    return AnalysisOutput(
        summary=AnalysisSummary(short=short, paragraph=f"{short}, at paragraph length."),
        entities=[EntityMention(name=name, type="technology") for name in entity_names],
        tags=["testing"],
        priority="read",
        confidence=0.9,
    )


class FakeAnalyzer:
    """Stands in for ContentAnalyzer; returns canned output and counts calls."""

    def __init__(self, output: Optional[AnalysisOutput] = None, error: Optional[Exception] = None):
        self.output = output or analysis_output("AI", "Machine Learning")
        self.error = error
        self.calls: List[str] = []
        self.model_config = ModelConfig(provider="gemini", model="fake-model")
        self.prompt_info = {"name": "content_analysis", "version": "v1.0"}

    async def analyze(self, title, content, url="", *, timeout_seconds=None):
        self.calls.append(title)
        if self.error is not None:
            raise self.error
        return self.output


class FakeDigestWriter:
    def __init__(self):
        self.calls = []

    async def write_digest(self, timeframe, items, *, timeout_seconds=None):
        self.calls.append((timeframe, list(items)))
        return DigestOutput(title=f"Your {timeframe.value} digest", body="First block\n\nSecond block")


class FakeFetcher:
    def __init__(self, items=None, not_modified: bool = False):
        self.items = items or []
        self.not_modified = not_modified
        self.calls = 0

    async def fetch(self, source):
        self.calls += 1
        return FetchResult(items=list(self.items), not_modified=self.not_modified)


class FakeMailer:
    def __init__(self, delivered: bool = True):
        self.delivered = delivered
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append((to, subject, html))
        return self.delivered


@pytest.fixture
def services() -> PipelineServices:
    return PipelineServices(
        fetcher=FakeFetcher(),
        analyzer=FakeAnalyzer(),
        digest_writer=FakeDigestWriter(),
        mailer=FakeMailer(),
    )
