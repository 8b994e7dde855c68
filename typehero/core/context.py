"""Action context management using contextvars.

Every comment action runs under its own action ID, plus the ID of the
session user who triggered it. Both are picked up by the logging
processors without being passed around explicitly.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


action_id_var: ContextVar[str] = ContextVar("action_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def generate_action_id() -> str:
    """Generate a new unique action ID."""
    return str(uuid4())


def get_action_id() -> str:
    """Get the current action ID."""
    return action_id_var.get()


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary."""
    context: dict[str, Any] = {}

    action_id = get_action_id()
    if action_id:
        context["action_id"] = action_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    return context


class ActionContext:
    """Context manager for the scope of one comment action.

    Usage:
        with ActionContext(user_id=user.id):
            log.info("comment_created")  # includes action_id, user_id

    An anonymous action (``user_id=None``) clears any outer user ID for
    its duration.
    """

    def __init__(
        self,
        action_id: str | None = None,
        user_id: str | UUID | None = None,
    ) -> None:
        self.action_id = action_id
        self.user_id = user_id
        self._action_token: Token[str] | None = None
        self._user_token: Token[str | None] | None = None

    def __enter__(self) -> "ActionContext":
        """Enter context and set variables."""
        self._action_token = action_id_var.set(self.action_id or generate_action_id())
        self._user_token = user_id_var.set(
            str(self.user_id) if self.user_id is not None else None
        )
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        if self._user_token is not None:
            user_id_var.reset(self._user_token)
        if self._action_token is not None:
            action_id_var.reset(self._action_token)
