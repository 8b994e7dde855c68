"""Comment service layer.

Business logic for:
- Paginated comment and reply lists
- Comment create, reply, update and soft delete
- Abuse reports with one open report per reporter
"""

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import (
    Comment,
    CommentReport,
    CommentRoot,
    create_comment,
    create_report,
)
from .schemas import CommentPayload, CommentResponse, PaginatedComments, ReportPayload


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from typehero.auth.session import SessionUser


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UnauthenticatedError(CommentError):
    """No signed-in user."""

    def __init__(self, message: str = "You need to be signed in"):
        super().__init__(message, "unauthenticated")


class EmptyTextError(CommentError):
    """Submitted text is empty after trimming."""

    def __init__(self, message: str = "Text cannot be empty"):
        super().__init__(message, "text_is_empty")


class DuplicateReportError(CommentError):
    """Reporter already has an open report on the comment."""

    def __init__(self, message: str = "Comment already reported"):
        super().__init__(message, "already_exists")


class CommentNotFoundError(CommentError):
    """Comment not found or deleted."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class PermissionDeniedError(CommentError):
    """User is not allowed to touch the comment."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class InvalidTargetError(CommentError):
    """Reply target is a reply itself, or belongs to another root."""

    def __init__(self, message: str = "Invalid reply target"):
        super().__init__(message, "invalid_target")


def _require_user(user: "SessionUser | None") -> "SessionUser":
    if user is None:
        raise UnauthenticatedError
    return user


def _clean_text(text: str | None) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise EmptyTextError
    return cleaned


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    # Upper bound on rows scanned per list (top-level comments of a root, or
    # replies of a comment); lists are paged in memory
    MAX_LIST_ROWS = 2000

    def __init__(self, session: "Session", keyspace: str, page_size: int = 10):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self.page_size = page_size
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        columns = """
            root_type, root_id, comment_id, parent_id, author_id, author_name,
            text, is_edited, edited_at, is_deleted, deleted_at, created_at, updated_at
        """
        placeholders = ", ".join("?" * 13)

        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments ({columns})
            VALUES ({placeholders})
        """)

        self._insert_comment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id ({columns})
            VALUES ({placeholders})
        """)

        self._insert_comment_by_parent = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_parent ({columns})
            VALUES ({placeholders})
        """)

        self._get_comments_by_root = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE root_type = ? AND root_id = ?
            LIMIT ?
        """)

        self._get_comments_by_parent = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_parent
            WHERE parent_id = ?
            LIMIT ?
        """)

        self._get_comment_by_id = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        # Text updates, one per table
        self._update_text = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET text = ?, is_edited = true, edited_at = ?, updated_at = ?
            WHERE root_type = ? AND root_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._update_text_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET text = ?, is_edited = true, edited_at = ?, updated_at = ?
            WHERE comment_id = ?
        """)

        self._update_text_by_parent = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_parent
            SET text = ?, is_edited = true, edited_at = ?, updated_at = ?
            WHERE parent_id = ? AND created_at = ? AND comment_id = ?
        """)

        # Soft deletes, one per table
        self._soft_delete = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET is_deleted = true, deleted_at = ?, updated_at = ?
            WHERE root_type = ? AND root_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._soft_delete_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET is_deleted = true, deleted_at = ?, updated_at = ?
            WHERE comment_id = ?
        """)

        self._soft_delete_by_parent = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_parent
            SET is_deleted = true, deleted_at = ?, updated_at = ?
            WHERE parent_id = ? AND created_at = ? AND comment_id = ?
        """)

        # Reports
        self._insert_report = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_reports
            (comment_id, reporter_id, report_id, categories, text, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_reports_by_reporter = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_reports
            WHERE comment_id = ? AND reporter_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Look up a single comment by ID, deleted or not."""
        result = await self.session.aexecute(self._get_comment_by_id, [comment_id])
        row = result[0] if result else None
        return Comment.from_row(row) if row else None

    async def _get_live_comment(self, comment_id: UUID) -> Comment:
        comment = await self.get_comment(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError
        return comment

    def _live_comments(self, rows, **list_key) -> list[Comment]:
        rows = list(rows)
        if len(rows) >= self.MAX_LIST_ROWS:
            logger.warning(
                "comment_list_truncated",
                max_rows=self.MAX_LIST_ROWS,
                **list_key,
            )
        return [Comment.from_row(row) for row in rows if not row.is_deleted]

    async def _list_replies(self, parent_id: UUID) -> list[Comment]:
        rows = await self.session.aexecute(
            self._get_comments_by_parent,
            [parent_id, self.MAX_LIST_ROWS],
        )
        return self._live_comments(rows, parent_id=str(parent_id))

    async def count_replies(self, comment_id: UUID) -> int:
        """Count live replies of a comment."""
        return len(await self._list_replies(comment_id))

    async def get_paginated_comments(
        self,
        root_type: CommentRoot,
        root_id: int,
        page: int = 1,
        parent_id: UUID | None = None,
    ) -> PaginatedComments:
        """Get one page of a root's comments, or of a comment's replies.

        Lists are ordered newest first and exclude deleted comments.
        Top-level lists exclude replies and carry each comment's live reply
        count. A page past the end returns no comments.
        """
        page = max(page, 1)

        if parent_id is not None:
            comments = await self._list_replies(parent_id)
        else:
            rows = await self.session.aexecute(
                self._get_comments_by_root,
                [root_type.value, root_id, self.MAX_LIST_ROWS],
            )
            comments = self._live_comments(
                rows, root_type=root_type.value, root_id=root_id
            )

        total = len(comments)
        start = (page - 1) * self.page_size
        page_comments = comments[start : start + self.page_size]

        responses = []
        for comment in page_comments:
            reply_count = 0 if comment.is_reply else await self.count_replies(
                comment.comment_id
            )
            responses.append(CommentResponse.from_comment(comment, reply_count))

        return PaginatedComments(
            comments=responses,
            page=page,
            total_pages=math.ceil(total / self.page_size),
            total_comments=total,
        )

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _write_comment(self, comment: Comment) -> None:
        """Insert into the ID lookup, then the root table or (for replies) by_parent."""
        values = [
            comment.root_type.value,
            comment.root_id,
            comment.comment_id,
            comment.parent_id,
            comment.author_id,
            comment.author_name,
            comment.text,
            comment.is_edited,
            comment.edited_at,
            comment.is_deleted,
            comment.deleted_at,
            comment.created_at,
            comment.updated_at,
        ]
        await self.session.aexecute(self._insert_comment_by_id, values)
        if comment.parent_id:
            await self.session.aexecute(self._insert_comment_by_parent, values)
        else:
            await self.session.aexecute(self._insert_comment, values)

    async def add_comment(
        self,
        user: "SessionUser | None",
        payload: CommentPayload,
    ) -> Comment:
        """Create a top-level comment on a root."""
        author = _require_user(user)
        text = _clean_text(payload.text)

        comment = create_comment(
            root_type=payload.root_type,
            root_id=payload.root_id,
            author_id=author.id,
            author_name=author.display_name,
            text=text,
        )
        await self._write_comment(comment)

        logger.info(
            "comment_created",
            comment_id=str(comment.comment_id),
            root_type=comment.root_type.value,
            root_id=comment.root_id,
        )
        return comment

    async def reply_comment(
        self,
        user: "SessionUser | None",
        payload: CommentPayload,
        parent_id: UUID,
    ) -> Comment:
        """Reply to a top-level comment.

        The parent must be live, must not be a reply itself and must
        belong to the payload's root.
        """
        author = _require_user(user)
        text = _clean_text(payload.text)

        parent = await self._get_live_comment(parent_id)
        if parent.is_reply:
            raise InvalidTargetError("Replies cannot be nested")
        if (parent.root_type, parent.root_id) != (payload.root_type, payload.root_id):
            raise InvalidTargetError("Reply must belong to the parent's root")

        reply = create_comment(
            root_type=parent.root_type,
            root_id=parent.root_id,
            author_id=author.id,
            author_name=author.display_name,
            text=text,
            parent_id=parent.comment_id,
        )
        await self._write_comment(reply)

        logger.info(
            "comment_reply_created",
            comment_id=str(reply.comment_id),
            parent_id=str(parent.comment_id),
        )
        return reply

    async def update_comment(
        self,
        user: "SessionUser | None",
        text: str,
        comment_id: UUID,
    ) -> Comment:
        """Replace a comment's text. Only the author may edit."""
        author = _require_user(user)
        new_text = _clean_text(text)

        comment = await self._get_live_comment(comment_id)
        if comment.author_id != author.id:
            raise PermissionDeniedError("You can only edit your own comments")

        now = datetime.now(UTC)
        await self.session.aexecute(
            self._update_text_by_id, [new_text, now, now, comment.comment_id]
        )
        if comment.parent_id:
            await self.session.aexecute(
                self._update_text_by_parent,
                [new_text, now, now, comment.parent_id, comment.created_at, comment.comment_id],
            )
        else:
            await self.session.aexecute(
                self._update_text,
                [
                    new_text,
                    now,
                    now,
                    comment.root_type.value,
                    comment.root_id,
                    comment.created_at,
                    comment.comment_id,
                ],
            )

        comment.text = new_text
        comment.is_edited = True
        comment.edited_at = now
        comment.updated_at = now

        logger.info("comment_updated", comment_id=str(comment.comment_id))
        return comment

    async def delete_comment(
        self,
        user: "SessionUser | None",
        comment_id: UUID,
    ) -> Comment:
        """Soft delete a comment. Only the author may delete."""
        author = _require_user(user)

        comment = await self.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError
        if comment.author_id != author.id:
            raise PermissionDeniedError("You can only delete your own comments")
        if comment.is_deleted:
            return comment  # Already deleted

        now = datetime.now(UTC)
        await self.session.aexecute(self._soft_delete_by_id, [now, now, comment.comment_id])
        if comment.parent_id:
            await self.session.aexecute(
                self._soft_delete_by_parent,
                [now, now, comment.parent_id, comment.created_at, comment.comment_id],
            )
        else:
            await self.session.aexecute(
                self._soft_delete,
                [
                    now,
                    now,
                    comment.root_type.value,
                    comment.root_id,
                    comment.created_at,
                    comment.comment_id,
                ],
            )

        comment.is_deleted = True
        comment.deleted_at = now
        comment.updated_at = now

        logger.info("comment_deleted", comment_id=str(comment.comment_id))
        return comment

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def report_comment(
        self,
        user: "SessionUser | None",
        comment_id: UUID,
        payload: ReportPayload,
    ) -> CommentReport:
        """Report a comment for moderation.

        A reporter can hold only one open report per comment.
        """
        reporter = _require_user(user)

        categories = payload.categories()
        if not categories and not payload.text:
            raise EmptyTextError("Report needs an issue or a reason")

        await self._get_live_comment(comment_id)

        rows = await self.session.aexecute(
            self._get_reports_by_reporter, [comment_id, reporter.id]
        )
        if any(CommentReport.from_row(row).is_open for row in rows):
            raise DuplicateReportError

        report = create_report(
            comment_id=comment_id,
            reporter_id=reporter.id,
            categories=categories,
            text=payload.text,
        )
        await self.session.aexecute(
            self._insert_report,
            [
                report.comment_id,
                report.reporter_id,
                report.report_id,
                {c.value for c in report.categories},
                report.text,
                report.status.value,
                report.created_at,
            ],
        )

        logger.info(
            "comment_reported",
            comment_id=str(comment_id),
            report_id=str(report.report_id),
            categories=sorted(c.value for c in categories),
        )
        return report
