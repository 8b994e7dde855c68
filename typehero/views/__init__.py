"""Headless view models for the comment thread UI.

Rendering is left to the caller; these classes hold the UI state and run
the mutate-then-invalidate sequence against the comment actions.
"""

from .comment_input import CommentInput
from .comment_view import Clipboard, CommentView
from .comments_panel import CommentsPanel
from .errors import (
    DuplicateReport,
    EmptyText,
    NetworkFailure,
    NotFound,
    Unauthenticated,
    ViewError,
    error_for_result,
)
from .notices import Notice, Toaster
from .report_dialog import ReportDialog


__all__ = [
    "Clipboard",
    "CommentInput",
    "CommentView",
    "CommentsPanel",
    "DuplicateReport",
    "EmptyText",
    "NetworkFailure",
    "NotFound",
    "Notice",
    "ReportDialog",
    "Toaster",
    "Unauthenticated",
    "ViewError",
    "error_for_result",
]
