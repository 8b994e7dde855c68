"""Tests for CommentService.

Covers:
- add_comment / reply_comment
- update_comment / delete_comment
- report_comment
- get_paginated_comments
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session

from typehero.auth.session import SessionUser
from typehero.comments import service as service_module
from typehero.comments.models import CommentRoot, ReportCategory, ReportStatus
from typehero.comments.schemas import CommentPayload, ReportPayload
from typehero.comments.service import (
    CommentNotFoundError,
    CommentService,
    DuplicateReportError,
    EmptyTextError,
    InvalidTargetError,
    PermissionDeniedError,
    UnauthenticatedError,
)


@pytest.fixture
def payload() -> CommentPayload:
    return CommentPayload(
        text="  Great challenge!  ", root_id=1, root_type=CommentRoot.CHALLENGE
    )


def report_row(
    comment_id: UUID, reporter_id: UUID, status: ReportStatus
) -> SimpleNamespace:
    return SimpleNamespace(
        report_id=uuid4(),
        comment_id=comment_id,
        reporter_id=reporter_id,
        categories={"spam"},
        text=None,
        status=status.value,
        created_at=datetime.now(UTC),
    )


class TestAddComment:
    """Tests for add_comment method."""

    @pytest.mark.asyncio
    async def test_add_comment_writes_root_and_id_tables(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload: CommentPayload,
    ):
        """Should insert into comments and comments_by_id only."""
        comment = await comment_service.add_comment(user, payload)

        assert comment.text == "Great challenge!"
        assert comment.author_id == user.id
        assert comment.parent_id is None
        assert mock_session.aexecute.call_count == 2

    @pytest.mark.asyncio
    async def test_add_comment_requires_user(
        self,
        comment_service: CommentService,
        mock_session: Session,
        payload: CommentPayload,
    ):
        with pytest.raises(UnauthenticatedError):
            await comment_service.add_comment(None, payload)

        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_add_comment_rejects_blank_text(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        text: str,
    ):
        """Whitespace-only text never produces a comment."""
        blank = CommentPayload(text=text, root_id=1, root_type=CommentRoot.CHALLENGE)

        with pytest.raises(EmptyTextError) as exc:
            await comment_service.add_comment(user, blank)

        assert exc.value.code == "text_is_empty"
        mock_session.aexecute.assert_not_called()


class TestReplyComment:
    """Tests for reply_comment method."""

    @pytest.mark.asyncio
    async def test_reply_writes_parent_table(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload: CommentPayload,
        make_comment_row,
    ):
        parent = make_comment_row()
        mock_session.aexecute.side_effect = [[parent], None, None]

        reply = await comment_service.reply_comment(user, payload, parent.comment_id)

        assert reply.parent_id == parent.comment_id
        assert reply.root_id == parent.root_id
        # lookup + comments_by_id + comments_by_parent
        assert mock_session.aexecute.call_count == 4

    @pytest.mark.asyncio
    async def test_reply_to_reply_is_rejected(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload: CommentPayload,
        make_comment_row,
    ):
        """Replies only nest one level deep."""
        nested = make_comment_row(parent_id=uuid4())
        mock_session.aexecute.return_value = [nested]

        with pytest.raises(InvalidTargetError):
            await comment_service.reply_comment(user, payload, nested.comment_id)

    @pytest.mark.asyncio
    async def test_reply_must_share_parent_root(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload: CommentPayload,
        make_comment_row,
    ):
        parent = make_comment_row(root_type=CommentRoot.SOLUTION, root_id=1)
        mock_session.aexecute.return_value = [parent]

        with pytest.raises(InvalidTargetError):
            await comment_service.reply_comment(user, payload, parent.comment_id)

    @pytest.mark.asyncio
    async def test_reply_to_deleted_parent(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload: CommentPayload,
        make_comment_row,
    ):
        parent = make_comment_row(is_deleted=True)
        mock_session.aexecute.return_value = [parent]

        with pytest.raises(CommentNotFoundError):
            await comment_service.reply_comment(user, payload, parent.comment_id)


class TestUpdateComment:
    """Tests for update_comment method."""

    @pytest.mark.asyncio
    async def test_author_can_edit(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row(author_id=user.id)
        mock_session.aexecute.side_effect = [[row], None, None]

        comment = await comment_service.update_comment(
            user, " fixed typo ", row.comment_id
        )

        assert comment.text == "fixed typo"
        assert comment.is_edited is True
        assert comment.edited_at is not None
        assert mock_session.aexecute.call_count == 3

    @pytest.mark.asyncio
    async def test_editing_reply_updates_parent_table(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row(author_id=user.id, parent_id=uuid4())
        mock_session.aexecute.side_effect = [[row], None, None]

        await comment_service.update_comment(user, "edited", row.comment_id)

        assert mock_session.aexecute.call_count == 3

    @pytest.mark.asyncio
    async def test_non_author_cannot_edit(
        self,
        comment_service: CommentService,
        mock_session: Session,
        other_user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row()
        mock_session.aexecute.return_value = [row]

        with pytest.raises(PermissionDeniedError):
            await comment_service.update_comment(other_user, "mine now", row.comment_id)

        assert mock_session.aexecute.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_comment(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
    ):
        mock_session.aexecute.return_value = []

        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(user, "text", uuid4())


class TestDeleteComment:
    """Tests for delete_comment method."""

    @pytest.mark.asyncio
    async def test_author_soft_deletes(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row(author_id=user.id)
        mock_session.aexecute.side_effect = [[row], None, None]

        comment = await comment_service.delete_comment(user, row.comment_id)

        assert comment.is_deleted is True
        assert comment.deleted_at is not None
        assert mock_session.aexecute.call_count == 3

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(
        self,
        comment_service: CommentService,
        mock_session: Session,
        user: SessionUser,
        make_comment_row,
    ):
        """Deleting an already deleted comment writes nothing."""
        row = make_comment_row(author_id=user.id, is_deleted=True)
        mock_session.aexecute.return_value = [row]

        comment = await comment_service.delete_comment(user, row.comment_id)

        assert comment.is_deleted is True
        assert mock_session.aexecute.call_count == 1

    @pytest.mark.asyncio
    async def test_non_author_cannot_delete(
        self,
        comment_service: CommentService,
        mock_session: Session,
        other_user: SessionUser,
        make_comment_row,
    ):
        mock_session.aexecute.return_value = [make_comment_row()]

        with pytest.raises(PermissionDeniedError):
            await comment_service.delete_comment(other_user, uuid4())


class TestReportComment:
    """Tests for report_comment method."""

    @pytest.mark.asyncio
    async def test_report_is_stored_pending(
        self,
        comment_service: CommentService,
        mock_session: Session,
        other_user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row()
        mock_session.aexecute.side_effect = [[row], [], None]

        report = await comment_service.report_comment(
            other_user, row.comment_id, ReportPayload(spam=True, text="ads")
        )

        assert report.status == ReportStatus.PENDING
        assert report.categories == {ReportCategory.SPAM}
        insert_params = mock_session.aexecute.call_args_list[-1].args[1]
        assert insert_params[3] == {"spam"}
        assert insert_params[5] == "pending"

    @pytest.mark.asyncio
    async def test_second_report_by_same_user_is_duplicate(
        self,
        comment_service: CommentService,
        mock_session: Session,
        other_user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row()
        open_report = report_row(row.comment_id, other_user.id, ReportStatus.PENDING)
        mock_session.aexecute.side_effect = [[row], [open_report]]

        with pytest.raises(DuplicateReportError) as exc:
            await comment_service.report_comment(
                other_user, row.comment_id, ReportPayload(threat=True)
            )

        assert exc.value.code == "already_exists"
        assert mock_session.aexecute.call_count == 2

    @pytest.mark.asyncio
    async def test_can_report_again_after_review(
        self,
        comment_service: CommentService,
        mock_session: Session,
        other_user: SessionUser,
        make_comment_row,
    ):
        """Closed reports do not block a new one."""
        row = make_comment_row()
        closed = report_row(row.comment_id, other_user.id, ReportStatus.DISMISSED)
        mock_session.aexecute.side_effect = [[row], [closed], None]

        report = await comment_service.report_comment(
            other_user, row.comment_id, ReportPayload(bullying=True)
        )

        assert report.is_open is True

    @pytest.mark.asyncio
    async def test_report_requires_user(
        self,
        comment_service: CommentService,
        mock_session: Session,
    ):
        with pytest.raises(UnauthenticatedError):
            await comment_service.report_comment(None, uuid4(), ReportPayload(spam=True))

        mock_session.aexecute.assert_not_called()


class TestGetPaginatedComments:
    """Tests for get_paginated_comments method."""

    @pytest.mark.asyncio
    async def test_root_list_skips_deleted_and_counts_replies(
        self,
        comment_service: CommentService,
        mock_session: Session,
        make_comment_row,
    ):
        first = make_comment_row(text="first")
        second = make_comment_row(text="second")
        deleted = make_comment_row(is_deleted=True)
        reply = make_comment_row(parent_id=first.comment_id)
        mock_session.aexecute.side_effect = [
            [first, deleted, second],
            [reply],  # replies of first
            [],  # replies of second
        ]

        result = await comment_service.get_paginated_comments(CommentRoot.CHALLENGE, 1)

        assert [c.text for c in result.comments] == ["first", "second"]
        assert [c.reply_count for c in result.comments] == [1, 0]
        assert result.total_comments == 2
        assert result.total_pages == 1
        assert result.page == 1

    @pytest.mark.asyncio
    async def test_pages_are_sliced(
        self,
        mock_session: Session,
        make_comment_row,
    ):
        service = CommentService(
            session=mock_session, keyspace="test_keyspace", page_size=2
        )
        rows = [make_comment_row(text=str(i)) for i in range(5)]
        mock_session.aexecute.side_effect = [rows, [], []]

        result = await service.get_paginated_comments(CommentRoot.CHALLENGE, 1, page=2)

        assert [c.text for c in result.comments] == ["2", "3"]
        assert result.total_pages == 3
        assert result.total_comments == 5

    @pytest.mark.asyncio
    async def test_reply_list_has_no_reply_counts(
        self,
        comment_service: CommentService,
        mock_session: Session,
        make_comment_row,
    ):
        parent_id = uuid4()
        replies = [make_comment_row(parent_id=parent_id) for _ in range(3)]
        mock_session.aexecute.return_value = replies

        result = await comment_service.get_paginated_comments(
            CommentRoot.CHALLENGE, 1, parent_id=parent_id
        )

        assert len(result.comments) == 3
        assert all(c.is_reply for c in result.comments)
        assert mock_session.aexecute.call_count == 1

    @pytest.mark.asyncio
    async def test_empty_list(
        self,
        comment_service: CommentService,
        mock_session: Session,
    ):
        result = await comment_service.get_paginated_comments(CommentRoot.SOLUTION, 9)

        assert result.comments == []
        assert result.total_pages == 0
        assert result.total_comments == 0

    @pytest.mark.asyncio
    async def test_full_scan_is_logged(
        self,
        comment_service: CommentService,
        mock_session: Session,
        make_comment_row,
        monkeypatch,
    ):
        """A list that fills the scan bound is reported, not silently cut."""
        log = Mock()
        monkeypatch.setattr(service_module, "logger", log)
        monkeypatch.setattr(comment_service, "MAX_LIST_ROWS", 3)
        mock_session.aexecute.side_effect = [
            [make_comment_row() for _ in range(3)],
            [],
            [],
            [],
        ]

        result = await comment_service.get_paginated_comments(CommentRoot.CHALLENGE, 1)

        assert result.total_comments == 3
        log.warning.assert_called_once()
        assert log.warning.call_args.args == ("comment_list_truncated",)
        assert log.warning.call_args.kwargs["root_id"] == 1

    @pytest.mark.asyncio
    async def test_short_list_is_not_logged(
        self,
        comment_service: CommentService,
        mock_session: Session,
        make_comment_row,
        monkeypatch,
    ):
        log = Mock()
        monkeypatch.setattr(service_module, "logger", log)
        mock_session.aexecute.side_effect = [[make_comment_row()], []]

        await comment_service.get_paginated_comments(CommentRoot.CHALLENGE, 1)

        log.warning.assert_not_called()


class TestTableLayout:
    """Replies are kept out of the root partition."""

    @pytest.fixture
    def service(self, mock_session: Session) -> CommentService:
        mock_session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
        return CommentService(session=mock_session, keyspace="ks")

    def tables_written(self, mock_session: Session) -> list[str]:
        tables = []
        for call in mock_session.aexecute.call_args_list:
            words = call.args[0].split()
            if words[0] == "INSERT":
                tables.append(words[2])
            elif words[0] == "UPDATE":
                tables.append(words[1])
        return tables

    @pytest.mark.asyncio
    async def test_top_level_comment_goes_to_root_partition(
        self, service: CommentService, mock_session: Session, user: SessionUser, payload
    ):
        await service.add_comment(user, payload)

        assert self.tables_written(mock_session) == ["ks.comments_by_id", "ks.comments"]

    @pytest.mark.asyncio
    async def test_reply_goes_to_parent_partition(
        self,
        service: CommentService,
        mock_session: Session,
        user: SessionUser,
        payload,
        make_comment_row,
    ):
        parent = make_comment_row()
        mock_session.aexecute.side_effect = [[parent], None, None]

        await service.reply_comment(user, payload, parent.comment_id)

        assert self.tables_written(mock_session) == [
            "ks.comments_by_id",
            "ks.comments_by_parent",
        ]

    @pytest.mark.asyncio
    async def test_reply_edit_and_delete_skip_root_partition(
        self,
        service: CommentService,
        mock_session: Session,
        user: SessionUser,
        make_comment_row,
    ):
        row = make_comment_row(author_id=user.id, parent_id=uuid4())
        mock_session.aexecute.side_effect = [[row], None, None, [row], None, None]

        await service.update_comment(user, "edited", row.comment_id)
        await service.delete_comment(user, row.comment_id)

        assert "ks.comments" not in self.tables_written(mock_session)
