"""Typehero comments - application wiring."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from typehero.auth.session import Session
from typehero.comments.actions import CommentActions
from typehero.comments.models import CommentRoot
from typehero.comments.service import CommentService
from typehero.config import get_settings
from typehero.core.database import init_async_cassandra, shutdown_async_cassandra
from typehero.core.logging import configure_structlog, get_logger
from typehero.core.query_cache import QueryCache
from typehero.core.redis import init_redis, shutdown_redis
from typehero.views.comment_input import MarkdownRenderer, plain_text
from typehero.views.comment_view import Clipboard
from typehero.views.comments_panel import CommentsPanel
from typehero.views.notices import Toaster


logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    redis: Any = None
    comment_service: CommentService | None = None
    comment_actions: CommentActions | None = None
    query_cache: QueryCache | None = None


app_state = AppState()


def get_comment_actions() -> CommentActions:
    """Get CommentActions instance from app state."""
    if app_state.comment_actions is None:
        msg = "CommentActions not initialized"
        raise RuntimeError(msg)
    return app_state.comment_actions


def get_query_cache() -> QueryCache:
    """Get QueryCache instance from app state."""
    if app_state.query_cache is None:
        msg = "QueryCache not initialized"
        raise RuntimeError(msg)
    return app_state.query_cache


def create_comments_panel(
    root_type: CommentRoot,
    root_id: int,
    session: Session,
    toaster: Toaster,
    clipboard: Clipboard,
    current_url: str,
    render_markdown: MarkdownRenderer = plain_text,
) -> CommentsPanel:
    """Build a comments panel wired to the running app state."""
    settings = get_settings()
    return CommentsPanel(
        root_type,
        root_id,
        session,
        get_comment_actions(),
        get_query_cache(),
        toaster,
        clipboard,
        current_url,
        max_visible_pages=settings.comments_max_visible_pages,
        truncate_lines=settings.comments_truncate_lines,
        truncate_chars=settings.comments_truncate_chars,
        render_markdown=render_markdown,
    )


@asynccontextmanager
async def lifespan() -> AsyncGenerator[AppState, None]:
    """Application lifespan manager."""
    settings = get_settings()
    configure_structlog(settings, log_dir=Path(settings.log_dir))
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - queries fall through to Cassandra without it)
    try:
        app_state.redis = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - comment query cache disabled",
        )

    app_state.query_cache = QueryCache(
        redis=app_state.redis,
        namespace=f"{settings.app_name}:comments",
        stale_time=settings.comments_stale_time_seconds,
        ttl=settings.comments_cache_ttl_seconds,
    )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        app_state.comment_service = CommentService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
            page_size=settings.comments_page_size,
        )
        app_state.comment_actions = CommentActions(app_state.comment_service)
        logger.info("comment_service_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    try:
        yield app_state
    finally:
        logger.info("shutting_down_application")
        await shutdown_redis()
        await shutdown_async_cassandra()
        app_state.redis = None
        app_state.cassandra_session = None
        app_state.comment_service = None
        app_state.comment_actions = None
        app_state.query_cache = None
