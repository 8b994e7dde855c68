"""Database models for challenge comments.

Cassandra table definitions for:
- Comments: one list per root (challenge or solution), newest first
- Comments by parent: one reply list per top-level comment
- Comments by ID: O(1) lookup for mutations
- Comment reports: abuse reports, one open report per reporter

Threading is one level deep: a comment either hangs off its root
(parent_id NULL) or replies to a top-level comment of the same root.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CommentRoot(str, Enum):
    """Entities a comment thread can be attached to."""

    CHALLENGE = "CHALLENGE"
    SOLUTION = "SOLUTION"


class ReportCategory(str, Enum):
    """Categories a user can flag when reporting a comment."""

    SPAM = "spam"
    THREAT = "threat"
    HATE_SPEECH = "hate_speech"
    BULLYING = "bullying"


class ReportStatus(str, Enum):
    """Report moderation status."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Main comments table, partitioned by root
# Holds top-level comments only; replies live in comments_by_parent
COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    root_type TEXT,
    root_id BIGINT,
    comment_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    text TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((root_type, root_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

# Comments by ID - O(1) lookup table
COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    root_type TEXT,
    root_id BIGINT,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    text TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Comments by parent - one partition per reply list
COMMENTS_BY_PARENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_parent (
    parent_id UUID,
    comment_id UUID,
    root_type TEXT,
    root_id BIGINT,
    author_id UUID,
    author_name TEXT,
    text TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((parent_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

# Reports, clustered by reporter so (comment, reporter) lookups stay in one partition
REPORT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports (
    comment_id UUID,
    reporter_id UUID,
    report_id UUID,
    categories SET<TEXT>,
    text TEXT,
    status TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), reporter_id, report_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENTS_BY_PARENT_TABLE_CQL,
    REPORT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity with full details."""

    comment_id: UUID
    root_type: CommentRoot
    root_id: int
    parent_id: UUID | None
    author_id: UUID
    author_name: str
    text: str
    is_edited: bool
    edited_at: datetime | None
    is_deleted: bool
    deleted_at: datetime | None
    created_at: datetime
    updated_at: datetime
    reply_count: int = 0

    @property
    def is_reply(self) -> bool:
        """Whether this comment replies to another comment."""
        return self.parent_id is not None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from a row of any of the comment tables."""
        return cls(
            comment_id=row.comment_id,
            root_type=CommentRoot(row.root_type),
            root_id=row.root_id,
            parent_id=row.parent_id,
            author_id=row.author_id,
            author_name=row.author_name or "Anonymous",
            text=row.text,
            is_edited=row.is_edited or False,
            edited_at=row.edited_at,
            is_deleted=row.is_deleted or False,
            deleted_at=row.deleted_at,
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "comment_id": str(self.comment_id),
            "root_type": self.root_type.value,
            "root_id": self.root_id,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "author_id": str(self.author_id),
            "author_name": self.author_name,
            "text": self.text,
            "is_edited": self.is_edited,
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
            "is_deleted": self.is_deleted,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "reply_count": self.reply_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class CommentReport:
    """Report of a comment for moderation."""

    report_id: UUID
    comment_id: UUID
    reporter_id: UUID
    categories: set[ReportCategory] = field(default_factory=set)
    text: str | None = None
    status: ReportStatus = ReportStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_open(self) -> bool:
        """Open reports block the same reporter from reporting again."""
        return self.status == ReportStatus.PENDING

    @classmethod
    def from_row(cls, row: Any) -> "CommentReport":
        """Create CommentReport from Cassandra row."""
        return cls(
            report_id=row.report_id,
            comment_id=row.comment_id,
            reporter_id=row.reporter_id,
            categories={ReportCategory(c) for c in (row.categories or ())},
            text=row.text,
            status=ReportStatus(row.status),
            created_at=row.created_at,
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    root_type: CommentRoot,
    root_id: int,
    author_id: UUID,
    author_name: str,
    text: str,
    parent_id: UUID | None = None,
) -> Comment:
    """Create a new comment with default values."""
    now = datetime.now(UTC)
    return Comment(
        comment_id=uuid4(),
        root_type=root_type,
        root_id=root_id,
        parent_id=parent_id,
        author_id=author_id,
        author_name=author_name,
        text=text,
        is_edited=False,
        edited_at=None,
        is_deleted=False,
        deleted_at=None,
        created_at=now,
        updated_at=now,
    )


def create_report(
    comment_id: UUID,
    reporter_id: UUID,
    categories: set[ReportCategory],
    text: str | None = None,
) -> CommentReport:
    """Create a new pending comment report."""
    return CommentReport(
        report_id=uuid4(),
        comment_id=comment_id,
        reporter_id=reporter_id,
        categories=set(categories),
        text=text,
        status=ReportStatus.PENDING,
        created_at=datetime.now(UTC),
    )
