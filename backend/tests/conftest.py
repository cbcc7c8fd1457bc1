"""
Pytest configuration and shared fixtures
"""
import os
import tempfile
from datetime import datetime

import httpx
import pytest
import pytest_asyncio

# Keep the module-level engine away from /data
os.environ.setdefault("DATA_PATH", tempfile.mkdtemp(prefix="vitalwatch-test-"))

from vitalwatch.database import build_engine, build_session_factory, get_db, init_db  # noqa: E402
from vitalwatch.dependencies import get_dispatcher, get_llm_client  # noqa: E402
from vitalwatch.main import create_app  # noqa: E402
from vitalwatch.models import AlertRule, User, Website  # noqa: E402
from vitalwatch.services import ingestion  # noqa: E402
from vitalwatch.services.dispatcher import NotificationDispatcher  # noqa: E402


class FakeTransport:
    """Mail transport that records digests instead of sending them."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    async def send(self, recipient, digest):
        self.sent.append((recipient, digest))
        return self.succeed


class FakeLLM:
    """LLM client returning canned text, or raising when given an error."""

    def __init__(self, text="Compress images and defer scripts.", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def summarize(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture(autouse=True)
def fresh_website_locks():
    """asyncio locks bind to one event loop; each test gets its own set."""
    ingestion.ingestion_service.locks = ingestion.WebsiteLocks()
    yield


@pytest_asyncio.fixture
async def engine(tmp_path):
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest_asyncio.fixture
async def client(session_factory, transport, fake_llm):
    app = create_app()

    async def override_get_db():
        async with session_factory() as db_session:
            yield db_session

    dispatcher = NotificationDispatcher(session_factory, transport, mail_timeout=2)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


async def make_user(session, open_id="user-1", email="owner@example.com"):
    user = User(open_id=open_id, name="Owner", email=email)
    session.add(user)
    await session.commit()
    return user


async def make_website(session, user, name="Example", is_active=1):
    website = Website(user_id=user.id, url="https://example.com", name=name, is_active=is_active)
    session.add(website)
    await session.commit()
    return website


async def make_rule(session, website, metric_type="lcp", threshold="2500", is_active=1):
    rule = AlertRule(
        website_id=website.id,
        metric_type=metric_type,
        threshold_value=threshold,
        is_active=is_active,
    )
    session.add(rule)
    await session.commit()
    return rule


@pytest_asyncio.fixture
async def owner(session):
    return await make_user(session)


@pytest_asyncio.fixture
async def website(session, owner):
    return await make_website(session, owner)


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 12, 0, 0)
