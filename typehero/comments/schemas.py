"""Pydantic schemas for challenge comments.

Request/Response models with validation for:
- Comment create, reply and update payloads
- Report payloads (category flags plus free-text reason)
- Paginated page results
- Result tags returned by the comment actions
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .models import CommentRoot, ReportCategory


MAX_COMMENT_LENGTH = 10000
MAX_REPORT_TEXT_LENGTH = 1000

REPORT_REASON_REQUIRED = "Your report should include an issue or a reason."


class ActionResult(str, Enum):
    """Result tag returned by every comment mutation."""

    OK = "ok"
    TEXT_IS_EMPTY = "text_is_empty"
    UNAUTHORIZED = "unauthorized"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    INVALID_TARGET = "invalid_target"


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentPayload(BaseModel):
    """Payload to create a comment or reply on a root.

    Empty text is not rejected here: the actions report it as a result tag
    rather than a validation error.
    """

    text: str = Field(default="", max_length=MAX_COMMENT_LENGTH)
    root_id: int
    root_type: CommentRoot


class ReportPayload(BaseModel):
    """Report form: at least one category flag or a non-empty reason."""

    spam: bool | None = None
    threat: bool | None = None
    hate_speech: bool | None = None
    bullying: bool | None = None
    text: str | None = Field(
        default=None, max_length=MAX_REPORT_TEXT_LENGTH, validate_default=True
    )

    @field_validator("text")
    @classmethod
    def require_issue_or_reason(cls, v: str | None, info: ValidationInfo) -> str | None:
        """Strip the reason and reject reports with no category and no reason."""
        v = v.strip() if v else None
        flagged = any(info.data.get(c.value) for c in ReportCategory)
        if not flagged and not v:
            raise ValueError(REPORT_REASON_REQUIRED)
        return v or None

    def categories(self) -> set[ReportCategory]:
        """Categories flagged on this report."""
        return {c for c in ReportCategory if getattr(self, c.value)}


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthorResponse(BaseModel):
    """Author information in comment response."""

    id: UUID
    name: str


class CommentResponse(BaseModel):
    """Response for a single comment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    root_type: CommentRoot
    root_id: int
    parent_id: UUID | None = None
    author: AuthorResponse
    text: str
    is_edited: bool = False
    edited_at: datetime | None = None
    reply_count: int = 0
    created_at: datetime
    updated_at: datetime

    @property
    def is_reply(self) -> bool:
        """Whether this comment replies to another comment."""
        return self.parent_id is not None

    @classmethod
    def from_comment(cls, comment: Any, reply_count: int | None = None) -> "CommentResponse":
        """Create response from Comment entity.

        Args:
            comment: Comment entity
            reply_count: Override for reply_count (actual count if provided)
        """
        return cls(
            id=comment.comment_id,
            root_type=comment.root_type,
            root_id=comment.root_id,
            parent_id=comment.parent_id,
            author=AuthorResponse(id=comment.author_id, name=comment.author_name),
            text=comment.text,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            reply_count=reply_count if reply_count is not None else comment.reply_count,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class PaginatedComments(BaseModel):
    """One page of a comment list. Pages are 1-indexed."""

    comments: list[CommentResponse] = Field(default_factory=list)
    page: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    total_comments: int = Field(ge=0)
