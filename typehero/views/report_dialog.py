"""Report dialog: category flags plus an optional free-text reason."""

from uuid import UUID

import structlog
from pydantic import ValidationError

from typehero.auth.session import Session
from typehero.comments.actions import CommentActions
from typehero.comments.models import ReportCategory
from typehero.comments.schemas import ReportPayload

from .errors import EmptyText, NetworkFailure, Unauthenticated, ViewError, error_for_result
from .notices import Toaster


logger = structlog.get_logger(__name__)

REPORT_THANKS = "Thank you for your report"
REPORT_THANKS_DESCRIPTION = "We'll review it and take action if needed."


class ReportDialog:
    """Report form for a single comment.

    Validation runs locally first; a report with no flag and no reason
    never reaches the network.
    """

    def __init__(
        self,
        comment_id: UUID,
        session: Session,
        actions: CommentActions,
        toaster: Toaster,
    ):
        self.comment_id = comment_id
        self.session = session
        self.actions = actions
        self.toaster = toaster
        self.flags: dict[ReportCategory, bool] = {c: False for c in ReportCategory}
        self.text = ""
        self.is_open = True
        self.is_submitting = False
        self.errors: dict[str, str] = {}

    def set_flag(self, category: ReportCategory, value: bool = True) -> None:
        self.flags[category] = value

    def _payload_data(self) -> dict:
        data = {c.value: checked for c, checked in self.flags.items()}
        data["text"] = self.text
        return data

    def validate(self) -> ReportPayload | None:
        """Validate the form, recording field errors in ``errors``."""
        try:
            payload = ReportPayload.model_validate(self._payload_data())
        except ValidationError as e:
            self.errors = {
                ".".join(str(p) for p in err["loc"]) or "text": _message(err["msg"])
                for err in e.errors()
            }
            return None
        self.errors = {}
        return payload

    async def submit(self) -> ViewError | None:
        """Send the report.

        Returns:
            The failure shown to the user, or None on success
        """
        if not self.session.is_authenticated:
            error: ViewError = Unauthenticated()
            self.toaster.notify_error(error)
            return error

        payload = self.validate()
        if payload is None:
            return EmptyText()

        self.is_submitting = True
        try:
            result = await self.actions.report_comment(
                payload, self.comment_id, self.session.user
            )
        except Exception as e:
            logger.error(
                "report_submit_failed",
                comment_id=str(self.comment_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            error = NetworkFailure()
            self.toaster.notify_error(error)
            return error
        finally:
            self.is_submitting = False

        error = error_for_result(result)
        if error is not None:
            self.toaster.notify_error(error)
            return error

        self.toaster.toast(REPORT_THANKS, REPORT_THANKS_DESCRIPTION, variant="success")
        self.close()
        return None

    def close(self) -> None:
        self.is_open = False


def _message(msg: str) -> str:
    # pydantic prefixes ValueError messages raised in validators
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg
