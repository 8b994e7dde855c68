"""Comment actions: the calls the comment views make.

Each mutation takes the session user explicitly, runs under its own
action context and answers with an ActionResult tag instead of raising.
Infrastructure failures (driver errors, timeouts) are not tags; they
propagate to the caller.
"""

from typing import Any
from uuid import UUID

import structlog
from pydantic import ValidationError

from typehero.auth.session import SessionUser
from typehero.core.context import ActionContext

from .models import CommentRoot
from .schemas import ActionResult, CommentPayload, PaginatedComments, ReportPayload
from .service import CommentError, CommentService


logger = structlog.get_logger(__name__)


_RESULT_MAP = {
    "unauthenticated": ActionResult.UNAUTHORIZED,
    "permission_denied": ActionResult.UNAUTHORIZED,
    "text_is_empty": ActionResult.TEXT_IS_EMPTY,
    "already_exists": ActionResult.ALREADY_EXISTS,
    "comment_not_found": ActionResult.NOT_FOUND,
    "invalid_target": ActionResult.INVALID_TARGET,
}


def result_for_error(error: CommentError) -> ActionResult:
    """Convert a comment error to its result tag.

    Raises:
        CommentError: re-raised when the code has no tag
    """
    result = _RESULT_MAP.get(error.code)
    if result is None:
        raise error
    return result


class CommentActions:
    """Action facade over CommentService."""

    def __init__(self, service: CommentService):
        self.service = service

    async def get_paginated_comments(
        self,
        root_id: int,
        root_type: CommentRoot,
        page: int = 1,
        parent_id: UUID | None = None,
    ) -> PaginatedComments:
        """Fetch one page of comments (or replies when parent_id is given)."""
        return await self.service.get_paginated_comments(
            root_type=root_type, root_id=root_id, page=page, parent_id=parent_id
        )

    async def _run(self, action: str, user: SessionUser | None, call) -> ActionResult:
        with ActionContext(user_id=user.id if user else None):
            try:
                await call()
            except CommentError as e:
                result = result_for_error(e)
                logger.info("comment_action_rejected", action=action, result=result.value)
                return result
            return ActionResult.OK

    async def add_comment(
        self,
        payload: CommentPayload | dict[str, Any],
        user: SessionUser | None,
    ) -> ActionResult:
        """Post a top-level comment."""
        payload = CommentPayload.model_validate(payload)
        return await self._run(
            "add_comment", user, lambda: self.service.add_comment(user, payload)
        )

    async def reply_comment(
        self,
        payload: CommentPayload | dict[str, Any],
        parent_id: UUID,
        user: SessionUser | None,
    ) -> ActionResult:
        """Reply to a top-level comment."""
        payload = CommentPayload.model_validate(payload)
        return await self._run(
            "reply_comment",
            user,
            lambda: self.service.reply_comment(user, payload, parent_id),
        )

    async def update_comment(
        self,
        text: str,
        comment_id: UUID,
        user: SessionUser | None,
    ) -> ActionResult:
        """Edit the text of the user's own comment."""
        return await self._run(
            "update_comment",
            user,
            lambda: self.service.update_comment(user, text, comment_id),
        )

    async def delete_comment(
        self,
        comment_id: UUID,
        user: SessionUser | None,
    ) -> ActionResult:
        """Delete the user's own comment."""
        return await self._run(
            "delete_comment",
            user,
            lambda: self.service.delete_comment(user, comment_id),
        )

    async def report_comment(
        self,
        report: ReportPayload | dict[str, Any],
        comment_id: UUID,
        user: SessionUser | None,
    ) -> ActionResult:
        """Report a comment. An empty report counts as empty text."""
        if user is None:
            return ActionResult.UNAUTHORIZED
        try:
            payload = ReportPayload.model_validate(report)
        except ValidationError:
            return ActionResult.TEXT_IS_EMPTY
        return await self._run(
            "report_comment",
            user,
            lambda: self.service.report_comment(user, comment_id, payload),
        )
