"""Challenge comment module.

Provides threaded comments on challenges and solutions with:
- Paginated comment and reply lists
- Create, reply, edit and soft delete by the author
- Abuse reports with one open report per reporter
- Query cache keys for comment lists
"""

from .actions import CommentActions, result_for_error
from .models import (
    COMMENTS_TABLES_CQL,
    Comment,
    CommentReport,
    CommentRoot,
    ReportCategory,
    ReportStatus,
)
from .pagination import Pagination, pagination_window
from .queries import comment_list_family, comment_list_query
from .schemas import ActionResult, CommentPayload, PaginatedComments, ReportPayload
from .service import CommentService


__all__ = [
    "COMMENTS_TABLES_CQL",
    "ActionResult",
    "Comment",
    "CommentActions",
    "CommentPayload",
    "CommentReport",
    "CommentRoot",
    "CommentService",
    "PaginatedComments",
    "Pagination",
    "ReportCategory",
    "ReportPayload",
    "ReportStatus",
    "comment_list_family",
    "comment_list_query",
    "pagination_window",
    "result_for_error",
]
