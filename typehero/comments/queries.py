"""Query keys and query handles for comment lists."""

from typing import TYPE_CHECKING
from uuid import UUID

from typehero.core.query_cache import PagedQuery, QueryCache

from .models import CommentRoot
from .schemas import PaginatedComments


if TYPE_CHECKING:
    from .actions import CommentActions


ROOT_LIST = "root"


def comment_list_family(
    root_type: CommentRoot,
    root_id: int,
    parent_id: UUID | None = None,
) -> tuple[str, int, str]:
    """Cache family of a comment list; the page number completes the key.

    Top-level lists and each comment's reply list get distinct families.
    """
    return (
        root_type.value.lower(),
        root_id,
        str(parent_id) if parent_id else ROOT_LIST,
    )


def comment_list_query(
    cache: QueryCache,
    actions: "CommentActions",
    root_type: CommentRoot,
    root_id: int,
    parent_id: UUID | None = None,
    page: int = 1,
) -> PagedQuery[PaginatedComments]:
    """Build the paged query for a root's comments or a comment's replies."""

    async def fetch_page(page_number: int) -> PaginatedComments:
        return await actions.get_paginated_comments(
            root_id=root_id,
            root_type=root_type,
            page=page_number,
            parent_id=parent_id,
        )

    return PagedQuery(
        cache,
        comment_list_family(root_type, root_id, parent_id),
        fetch_page,
        PaginatedComments,
        page=page,
    )
