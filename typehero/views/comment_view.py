"""Comment view: one comment, its controls and its lazily loaded replies.

Independent states per view:
- replies: collapsed -> expanded (fetched on first expand)
- editing: viewing <-> editing (author only)
- replying: viewing <-> replying (top-level comments only)
- body: truncated -> full (only through expand_body)
- delete: idle -> confirming -> idle
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Literal, Protocol

import structlog

from typehero.auth.session import Session
from typehero.comments.actions import CommentActions
from typehero.comments.queries import comment_list_family, comment_list_query
from typehero.comments.schemas import (
    ActionResult,
    CommentResponse,
    PaginatedComments,
)
from typehero.core.query_cache import PagedQuery, QueryCache
from typehero.utils.relative_time import relative_time

from .comment_input import CommentInput, MarkdownRenderer, plain_text
from .errors import NetworkFailure, ViewError, error_for_result
from .notices import Toaster
from .report_dialog import ReportDialog


logger = structlog.get_logger(__name__)

TRUNCATE_LINES = 15
TRUNCATE_CHARS = 1500

SHARE_SUCCESS = "Copied comment URL to clipboard!"

RepliesState = Literal["collapsed", "expanded"]
BodyState = Literal["truncated", "full"]
Control = Literal["share", "reply", "edit", "delete", "report"]


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


def is_long_body(text: str, max_lines: int, max_chars: int) -> bool:
    """Whether a body is long enough to start out truncated."""
    return len(text) > max_chars or text.count("\n") + 1 > max_lines


class CommentView:
    """State machine behind a single rendered comment."""

    def __init__(
        self,
        comment: CommentResponse,
        session: Session,
        actions: CommentActions,
        cache: QueryCache,
        toaster: Toaster,
        clipboard: Clipboard,
        current_url: str,
        readonly: bool = False,
        truncate_lines: int = TRUNCATE_LINES,
        truncate_chars: int = TRUNCATE_CHARS,
        render_markdown: MarkdownRenderer = plain_text,
    ):
        self.comment = comment
        self.session = session
        self.actions = actions
        self.cache = cache
        self.toaster = toaster
        self.clipboard = clipboard
        self.current_url = current_url.rstrip("/")
        self.readonly = readonly
        self.truncate_lines = truncate_lines
        self.truncate_chars = truncate_chars
        self.render_markdown = render_markdown

        self.replies_state: RepliesState = "collapsed"
        self.reply_query: PagedQuery[PaginatedComments] | None = None
        self.body_state: BodyState = (
            "truncated"
            if is_long_body(comment.text, truncate_lines, truncate_chars)
            else "full"
        )
        self.is_editing = False
        self.is_replying = False
        self.is_confirming_delete = False
        self.is_deleted = False

        self.edit_input = CommentInput(
            "edit",
            session,
            toaster,
            on_submit=self.submit_edit,
            on_cancel=self.stop_editing,
            value=comment.text,
            render_markdown=render_markdown,
        )
        self.reply_input = CommentInput(
            "reply",
            session,
            toaster,
            on_submit=self.submit_reply,
            on_cancel=self.stop_replying,
            render_markdown=render_markdown,
        )

    # ==========================================================================
    # Identity
    # ==========================================================================

    @property
    def is_reply(self) -> bool:
        return self.comment.is_reply

    @property
    def is_author(self) -> bool:
        return self.session.is_author(self.comment)

    @property
    def own_family(self) -> tuple:
        """Family of the list this comment is shown in."""
        return comment_list_family(
            self.comment.root_type, self.comment.root_id, self.comment.parent_id
        )

    @property
    def replies_family(self) -> tuple:
        return comment_list_family(
            self.comment.root_type, self.comment.root_id, self.comment.id
        )

    @property
    def root_family(self) -> tuple:
        return comment_list_family(self.comment.root_type, self.comment.root_id)

    @property
    def created_label(self) -> str:
        return relative_time(self.comment.created_at)

    def created_label_at(self, now: datetime) -> str:
        return relative_time(self.comment.created_at, now=now)

    def available_controls(self) -> list[Control]:
        if self.readonly:
            return []
        controls: list[Control] = ["share"]
        if not self.is_reply:
            controls.append("reply")
        if self.is_author:
            controls.extend(["edit", "delete"])
        else:
            controls.append("report")
        return controls

    # ==========================================================================
    # Body
    # ==========================================================================

    @property
    def body_html(self) -> str:
        return self.render_markdown(self.comment.text)

    def expand_body(self) -> None:
        self.body_state = "full"

    # ==========================================================================
    # Replies
    # ==========================================================================

    @property
    def can_toggle_replies(self) -> bool:
        return self.comment.reply_count > 0

    @property
    def reply_label(self) -> str:
        count = self.comment.reply_count
        return "1 reply" if count == 1 else f"{count} replies"

    @property
    def replies(self) -> list[CommentResponse]:
        if self.replies_state != "expanded" or self.reply_query is None:
            return []
        data = self.reply_query.data
        return data.comments if data else []

    async def toggle_replies(self) -> None:
        if self.replies_state == "expanded":
            self.replies_state = "collapsed"
            return

        self.replies_state = "expanded"
        if self.reply_query is None:
            self.reply_query = comment_list_query(
                self.cache,
                self.actions,
                self.comment.root_type,
                self.comment.root_id,
                parent_id=self.comment.id,
            )
        await self.reply_query.refresh()

    def reply_views(self) -> list["CommentView"]:
        return [
            CommentView(
                reply,
                self.session,
                self.actions,
                self.cache,
                self.toaster,
                self.clipboard,
                self.current_url,
                readonly=self.readonly,
                truncate_lines=self.truncate_lines,
                truncate_chars=self.truncate_chars,
                render_markdown=self.render_markdown,
            )
            for reply in self.replies
        ]

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _mutate(
        self,
        action: str,
        call: Callable[[], Awaitable[ActionResult]],
    ) -> ViewError | None:
        """Run a mutation, turning every failure into a notice."""
        try:
            result = await call()
        except Exception as e:
            logger.error(
                "comment_mutation_failed",
                action=action,
                comment_id=str(self.comment.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            error: ViewError | None = NetworkFailure()
        else:
            error = error_for_result(result)

        if error is not None:
            self.toaster.notify_error(error)
        return error

    async def _invalidate(self, *families: tuple) -> None:
        for family in dict.fromkeys(families):
            await self.cache.invalidate(family)

    def start_editing(self) -> None:
        if self.readonly or not self.is_author:
            return
        self.edit_input.change(self.comment.text)
        self.is_editing = True

    def stop_editing(self) -> None:
        self.is_editing = False

    async def submit_edit(self) -> ViewError | None:
        error = await self._mutate(
            "update_comment",
            lambda: self.actions.update_comment(
                self.edit_input.value, self.comment.id, self.session.user
            ),
        )
        if error is None:
            await self._invalidate(self.own_family)
            self.stop_editing()
        return error

    def start_replying(self) -> None:
        if self.readonly or self.is_reply:
            return
        self.is_replying = True

    def stop_replying(self) -> None:
        self.is_replying = False

    async def submit_reply(self) -> ViewError | None:
        payload = {
            "text": self.reply_input.value,
            "root_id": self.comment.root_id,
            "root_type": self.comment.root_type,
        }
        error = await self._mutate(
            "reply_comment",
            lambda: self.actions.reply_comment(
                payload, self.comment.id, self.session.user
            ),
        )
        if error is None:
            self.reply_input.change("")
            self.stop_replying()
            await self._invalidate(self.replies_family, self.root_family)
        return error

    def request_delete(self) -> None:
        if self.readonly or not self.is_author:
            return
        self.is_confirming_delete = True

    def cancel_delete(self) -> None:
        self.is_confirming_delete = False

    async def confirm_delete(self) -> ViewError | None:
        """Fire the delete; does nothing unless a delete was requested."""
        if not self.is_confirming_delete:
            return None
        self.is_confirming_delete = False

        error = await self._mutate(
            "delete_comment",
            lambda: self.actions.delete_comment(self.comment.id, self.session.user),
        )
        if error is None:
            self.is_deleted = True
            await self._invalidate(
                self.own_family, self.replies_family, self.root_family
            )
        return error

    # ==========================================================================
    # Share / report
    # ==========================================================================

    @property
    def share_url(self) -> str:
        return f"{self.current_url}/comment/{self.comment.id}"

    async def share(self) -> bool:
        try:
            await self.clipboard.write_text(self.share_url)
        except Exception as e:
            logger.error("comment_share_failed", error=str(e), error_type=type(e).__name__)
            self.toaster.notify_error(NetworkFailure())
            return False
        self.toaster.toast("Success!", SHARE_SUCCESS, variant="success")
        return True

    def open_report(self) -> ReportDialog:
        return ReportDialog(self.comment.id, self.session, self.actions, self.toaster)

    def close(self) -> None:
        if self.reply_query is not None:
            self.reply_query.close()
