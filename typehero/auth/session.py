"""Session identity consumed by the comment actions and views.

Sessions are established elsewhere; this module only describes the
signed-in user handed to each comment action.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    """The signed-in user, as supplied by the session provider."""

    id: UUID
    name: str = Field(default="", max_length=100)

    @property
    def display_name(self) -> str:
        return self.name or "Anonymous"


@dataclass(frozen=True)
class Session:
    """Read-only view of the current session."""

    user: SessionUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def is_author(self, comment: Any) -> bool:
        """Check whether the signed-in user wrote ``comment``.

        Accepts both Comment entities (author_id) and CommentResponse
        models (author.id).
        """
        if self.user is None:
            return False
        author = getattr(comment, "author", None)
        author_id = author.id if author is not None else comment.author_id
        return author_id == self.user.id
