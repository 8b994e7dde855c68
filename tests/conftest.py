"""Shared fixtures for comment tests.

- FakeRedis: dict-backed async stand-in for the redis.asyncio calls the
  query cache makes (get, set with ex, incr, delete)
- InMemoryCommentService: CommentService double that keeps comments and
  reports in dicts, used under the real CommentActions by the view tests
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session as CassandraSession

from typehero.auth.session import Session, SessionUser
from typehero.comments.actions import CommentActions
from typehero.comments.models import (
    Comment,
    CommentReport,
    CommentRoot,
    create_comment,
    create_report,
)
from typehero.comments.schemas import CommentResponse, PaginatedComments
from typehero.comments.service import (
    CommentNotFoundError,
    CommentService,
    DuplicateReportError,
    EmptyTextError,
    InvalidTargetError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from typehero.core.query_cache import QueryCache
from typehero.views.notices import Toaster


# ==============================================================================
# Redis
# ==============================================================================


class FakeRedis:
    """In-memory async Redis subset."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.get_calls = 0

    async def get(self, key: str) -> str | None:
        self.get_calls += 1
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def query_cache(fake_redis: FakeRedis) -> QueryCache:
    """Cache whose entries stay fresh for the whole test."""
    return QueryCache(redis=fake_redis, namespace="test", stale_time=60.0, ttl=300)


# ==============================================================================
# Cassandra
# ==============================================================================


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=CassandraSession)
    # Mock prepare to avoid actual statement preparation
    session.prepare = Mock(return_value=Mock())
    # Make aexecute awaitable (cassandra-asyncio-driver)
    session.aexecute = AsyncMock(return_value=[])
    return session


@pytest.fixture
def comment_service(mock_session) -> CommentService:
    """Create CommentService instance with mocked session."""
    return CommentService(session=mock_session, keyspace="test_keyspace", page_size=10)


@pytest.fixture
def make_comment_row():
    """Build a row shaped like the comment tables."""

    def _make(
        author_id: UUID | None = None,
        parent_id: UUID | None = None,
        root_type: CommentRoot = CommentRoot.CHALLENGE,
        root_id: int = 1,
        text: str = "Nice challenge",
        is_deleted: bool = False,
        created_at: datetime | None = None,
        comment_id: UUID | None = None,
    ) -> SimpleNamespace:
        created = created_at or datetime.now(UTC)
        return SimpleNamespace(
            comment_id=comment_id or uuid4(),
            root_type=root_type.value,
            root_id=root_id,
            parent_id=parent_id,
            author_id=author_id or uuid4(),
            author_name="ada",
            text=text,
            is_edited=False,
            edited_at=None,
            is_deleted=is_deleted,
            deleted_at=None,
            created_at=created,
            updated_at=created,
        )

    return _make


# ==============================================================================
# Users / sessions
# ==============================================================================


@pytest.fixture
def user() -> SessionUser:
    return SessionUser(id=uuid4(), name="ada")


@pytest.fixture
def other_user() -> SessionUser:
    return SessionUser(id=uuid4(), name="grace")


@pytest.fixture
def user_session(user: SessionUser) -> Session:
    return Session(user=user)


@pytest.fixture
def other_session(other_user: SessionUser) -> Session:
    return Session(user=other_user)


@pytest.fixture
def anonymous_session() -> Session:
    return Session()


# ==============================================================================
# In-memory comment backend for view tests
# ==============================================================================


class InMemoryCommentService:
    """Stores comments in memory and mirrors CommentService's rules.

    ``calls`` records every method invoked; set ``fail_with`` to make the
    next calls raise (simulating a driver failure).
    """

    def __init__(self, page_size: int = 10):
        self.page_size = page_size
        self.comments: dict[UUID, Comment] = {}
        self.reports: list[CommentReport] = []
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self._clock = datetime(2024, 1, 1, tzinfo=UTC)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _live(self, comment_id: UUID) -> Comment:
        comment = self.comments.get(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError
        return comment

    @staticmethod
    def _author(user):
        if user is None:
            raise UnauthenticatedError
        return user

    @staticmethod
    def _text(text):
        cleaned = (text or "").strip()
        if not cleaned:
            raise EmptyTextError
        return cleaned

    def seed(
        self,
        author: SessionUser,
        text: str,
        root_id: int = 1,
        parent_id: UUID | None = None,
        root_type: CommentRoot = CommentRoot.CHALLENGE,
    ) -> Comment:
        """Insert a comment directly, bypassing the recorded calls."""
        comment = create_comment(root_type, root_id, author.id, author.name, text, parent_id)
        comment.created_at = comment.updated_at = self._tick()
        self.comments[comment.comment_id] = comment
        return comment

    async def get_paginated_comments(self, root_type, root_id, page=1, parent_id=None):
        self._record("get_paginated_comments")
        live = [
            c for c in self.comments.values()
            if not c.is_deleted
            and c.root_type == root_type
            and c.root_id == root_id
            and c.parent_id == parent_id
        ]
        live.sort(key=lambda c: c.created_at, reverse=True)
        start = (page - 1) * self.page_size
        responses = []
        for c in live[start:start + self.page_size]:
            replies = sum(
                1 for r in self.comments.values()
                if r.parent_id == c.comment_id and not r.is_deleted
            )
            responses.append(CommentResponse.from_comment(c, replies))
        return PaginatedComments(
            comments=responses,
            page=page,
            total_pages=-(-len(live) // self.page_size),
            total_comments=len(live),
        )

    async def add_comment(self, user, payload):
        self._record("add_comment")
        author = self._author(user)
        return self.seed(
            author, self._text(payload.text), payload.root_id, root_type=payload.root_type
        )

    async def reply_comment(self, user, payload, parent_id):
        self._record("reply_comment")
        author = self._author(user)
        text = self._text(payload.text)
        parent = self._live(parent_id)
        if parent.is_reply:
            raise InvalidTargetError
        return self.seed(
            author, text, parent.root_id, parent.comment_id, parent.root_type
        )

    async def update_comment(self, user, text, comment_id):
        self._record("update_comment")
        author = self._author(user)
        new_text = self._text(text)
        comment = self._live(comment_id)
        if comment.author_id != author.id:
            raise PermissionDeniedError
        comment.text = new_text
        comment.is_edited = True
        return comment

    async def delete_comment(self, user, comment_id):
        self._record("delete_comment")
        author = self._author(user)
        comment = self.comments.get(comment_id)
        if comment is None:
            raise CommentNotFoundError
        if comment.author_id != author.id:
            raise PermissionDeniedError
        comment.is_deleted = True
        return comment

    async def report_comment(self, user, comment_id, payload):
        self._record("report_comment")
        reporter = self._author(user)
        self._live(comment_id)
        if any(
            r.comment_id == comment_id and r.reporter_id == reporter.id and r.is_open
            for r in self.reports
        ):
            raise DuplicateReportError
        report = create_report(comment_id, reporter.id, payload.categories(), payload.text)
        self.reports.append(report)
        return report


@pytest.fixture
def comment_store() -> InMemoryCommentService:
    return InMemoryCommentService(page_size=2)


@pytest.fixture
def comment_actions(comment_store: InMemoryCommentService) -> CommentActions:
    return CommentActions(comment_store)


@pytest.fixture
def toaster() -> Toaster:
    return Toaster()


class FakeClipboard:
    def __init__(self):
        self.text: str | None = None
        self.fail = False

    async def write_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("clipboard unavailable")
        self.text = text


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()
