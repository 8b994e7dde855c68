"""Comments panel: the collapsible container for a root's comment thread."""

import structlog

from typehero.auth.session import Session
from typehero.comments.actions import CommentActions
from typehero.comments.models import CommentRoot
from typehero.comments.pagination import (
    MAX_VISIBLE_PAGES,
    Pagination,
    next_page,
    previous_page,
)
from typehero.comments.queries import comment_list_family, comment_list_query
from typehero.comments.schemas import CommentResponse, PaginatedComments
from typehero.core.query_cache import QueryCache, QueryStatus

from .comment_input import CommentInput, MarkdownRenderer, plain_text
from .comment_view import TRUNCATE_CHARS, TRUNCATE_LINES, Clipboard, CommentView
from .errors import NetworkFailure, ViewError, error_for_result
from .notices import Toaster


logger = structlog.get_logger(__name__)


class CommentsPanel:
    """Top-level comment list for a challenge or solution.

    Owns the create input, the root list query and its pagination.
    """

    def __init__(
        self,
        root_type: CommentRoot,
        root_id: int,
        session: Session,
        actions: CommentActions,
        cache: QueryCache,
        toaster: Toaster,
        clipboard: Clipboard,
        current_url: str,
        expanded: bool = False,
        max_visible_pages: int = MAX_VISIBLE_PAGES,
        truncate_lines: int = TRUNCATE_LINES,
        truncate_chars: int = TRUNCATE_CHARS,
        render_markdown: MarkdownRenderer = plain_text,
    ):
        self.root_type = root_type
        self.root_id = root_id
        self.session = session
        self.actions = actions
        self.cache = cache
        self.toaster = toaster
        self.clipboard = clipboard
        self.current_url = current_url
        self.is_expanded = expanded
        self.max_visible_pages = max_visible_pages
        self.truncate_lines = truncate_lines
        self.truncate_chars = truncate_chars
        self.render_markdown = render_markdown

        self.query = comment_list_query(cache, actions, root_type, root_id)
        self.input = CommentInput(
            "create",
            session,
            toaster,
            on_submit=self.submit_comment,
            render_markdown=render_markdown,
        )

    @property
    def family(self) -> tuple:
        return comment_list_family(self.root_type, self.root_id)

    # ==========================================================================
    # Loading / display
    # ==========================================================================

    async def load(self) -> PaginatedComments | None:
        return await self.query.refresh()

    def toggle(self) -> None:
        self.is_expanded = not self.is_expanded

    @property
    def status(self) -> QueryStatus:
        return self.query.status

    @property
    def page(self) -> int:
        return self.query.page

    @property
    def total_pages(self) -> int:
        return self.query.data.total_pages if self.query.data else 0

    @property
    def comment_count(self) -> int | None:
        """Header count; None until the first page has loaded."""
        return self.query.data.total_comments if self.query.data else None

    @property
    def comments(self) -> list[CommentResponse]:
        return self.query.data.comments if self.query.data else []

    @property
    def is_empty(self) -> bool:
        return self.status == "success" and not self.comments

    @property
    def pagination(self) -> Pagination:
        return Pagination.build(self.page, self.total_pages, self.max_visible_pages)

    async def change_page(self, page: int) -> PaginatedComments | None:
        """Go to ``page``, clamped to the known page range."""
        page = max(1, min(page, max(self.total_pages, 1)))
        return await self.query.set_page(page)

    async def go_previous(self) -> PaginatedComments | None:
        return await self.change_page(previous_page(self.page))

    async def go_next(self) -> PaginatedComments | None:
        return await self.change_page(next_page(self.page, self.total_pages))

    def comment_views(self, readonly: bool = False) -> list[CommentView]:
        return [
            CommentView(
                comment,
                self.session,
                self.actions,
                self.cache,
                self.toaster,
                self.clipboard,
                self.current_url,
                readonly=readonly,
                truncate_lines=self.truncate_lines,
                truncate_chars=self.truncate_chars,
                render_markdown=self.render_markdown,
            )
            for comment in self.comments
        ]

    # ==========================================================================
    # Create
    # ==========================================================================

    async def submit_comment(self) -> ViewError | None:
        payload = {
            "text": self.input.value,
            "root_id": self.root_id,
            "root_type": self.root_type,
        }
        try:
            result = await self.actions.add_comment(payload, self.session.user)
        except Exception as e:
            logger.error(
                "comment_create_failed",
                root_type=self.root_type.value,
                root_id=self.root_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            error: ViewError | None = NetworkFailure()
        else:
            error = error_for_result(result)

        if error is not None:
            self.toaster.notify_error(error)
            return error

        self.input.change("")
        await self.cache.invalidate(self.family)
        return None

    def close(self) -> None:
        self.query.close()
