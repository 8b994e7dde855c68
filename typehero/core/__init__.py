# Core infrastructure
from typehero.core.context import (
    ActionContext,
    get_action_id,
    get_context,
    get_user_id,
)
from typehero.core.logging import configure_structlog, get_logger


__all__ = [
    "ActionContext",
    "configure_structlog",
    "get_action_id",
    "get_context",
    "get_logger",
    "get_user_id",
]
