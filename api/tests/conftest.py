"""Shared fixtures.

Services run over in-memory repositories with a controllable clock. API
tests use the memory backend without Redis.
"""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest


os.environ.update(
    {
        "ENVIRONMENT": "testing",
        "STORAGE_BACKEND": "memory",
        "REDIS_ENABLED": "false",
        "LOG_DIR": tempfile.mkdtemp(prefix="baraza-test-logs-"),
        "LOG_REQUESTS": "false",
    }
)

from fastapi.testclient import TestClient  # noqa: E402

from src.accounts.gateway import InMemoryAccountGateway  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from src.config import get_settings  # noqa: E402
from src.content.models import PollDraft  # noqa: E402
from src.content.repository import InMemoryContentRepository  # noqa: E402
from src.content.service import ContentStore  # noqa: E402
from src.core.locks import ContentLockManager  # noqa: E402
from src.moderation.aggregator import ReportAggregator  # noqa: E402
from src.moderation.repository import InMemoryModerationRepository  # noqa: E402
from src.moderation.service import ModerationEngine  # noqa: E402
from src.notifications.service import NotificationService  # noqa: E402
from src.notifications.sinks import EventSink  # noqa: E402
from src.polls.service import PollEngine  # noqa: E402
from src.votes.repository import InMemoryVoteRepository  # noqa: E402
from src.votes.service import VoteLedger  # noqa: E402


get_settings.cache_clear()


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingSink(EventSink):
    """Keeps every published event."""

    name = "recording"

    def __init__(self):
        self.events = []

    async def publish(self, event) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


# ==============================================================================
# Services
# ==============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifications(sink: RecordingSink) -> NotificationService:
    return NotificationService([sink], timeout=1.0)


@pytest.fixture
def locks() -> ContentLockManager:
    return ContentLockManager(blocking_timeout=1.0)


@pytest.fixture
def content_repository() -> InMemoryContentRepository:
    return InMemoryContentRepository()


@pytest.fixture
def content_store(content_repository, locks, notifications, clock) -> ContentStore:
    return ContentStore(
        content_repository, locks, notifications, max_depth=5, clock=clock
    )


@pytest.fixture
def vote_ledger(content_store, locks, notifications, clock) -> VoteLedger:
    return VoteLedger(
        content_store, InMemoryVoteRepository(), locks, notifications, clock=clock
    )


@pytest.fixture
def poll_engine(content_store, locks, notifications, clock) -> PollEngine:
    return PollEngine(content_store, locks, notifications, clock=clock)


@pytest.fixture
def moderation_repository() -> InMemoryModerationRepository:
    return InMemoryModerationRepository()


@pytest.fixture
def aggregator(
    content_store, moderation_repository, locks, notifications, clock
) -> ReportAggregator:
    return ReportAggregator(
        content_store, moderation_repository, locks, notifications, clock=clock
    )


@pytest.fixture
def accounts() -> InMemoryAccountGateway:
    return InMemoryAccountGateway()


@pytest.fixture
def engine(
    content_store, moderation_repository, locks, accounts, notifications, clock
) -> ModerationEngine:
    return ModerationEngine(
        content_store,
        moderation_repository,
        locks,
        accounts,
        notifications,
        clock=clock,
    )


# ==============================================================================
# Actors and content
# ==============================================================================


@pytest.fixture
def author_id() -> UUID:
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def moderator_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_post(content_store: ContentStore, author_id: UUID):
    """Async factory for posts by ``author_id``."""

    async def _make(**overrides):
        fields = {
            "author_id": author_id,
            "title": "Water shortage in Kibera",
            "body": "The taps have been dry for a week.",
        }
        fields.update(overrides)
        return await content_store.create_post(**fields)

    return _make


@pytest.fixture
def make_poll_post(make_post, clock: FakeClock):
    """Async factory for posts carrying a poll."""

    async def _make(options=("A", "B"), allow_multiple_votes=False, days=7):
        draft = PollDraft(
            question="Which option do you prefer?",
            options=list(options),
            end_date=clock.now + timedelta(days=days),
            allow_multiple_votes=allow_multiple_votes,
        )
        return await make_post(poll=draft)

    return _make


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def bearer():
    """Builds an Authorization header with a freshly minted access token."""

    def _headers(user_id: UUID, role: str = "citizen") -> dict[str, str]:
        token = create_access_token({"sub": str(user_id), "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client():
    """Test client with the application lifespan running."""
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client
