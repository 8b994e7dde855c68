"""Failures the comment views surface to the user."""

from typehero.comments.schemas import ActionResult


class ViewError(Exception):
    """Base view error."""

    title = "Failure!"
    description = "Something went wrong!"


class Unauthenticated(ViewError):
    title = "Unauthorized"
    description = "You need to be signed in to post a comment."


class EmptyText(ViewError):
    title = "Empty Comment"
    description = "You cannot post an empty comment."


class DuplicateReport(ViewError):
    title = "Already reported"
    description = "You have already reported this comment."


class NotFound(ViewError):
    title = "Comment not found"
    description = "This comment no longer exists."


class NetworkFailure(ViewError):
    """Anything that is not a result tag: driver errors, timeouts, bugs."""


_ERRORS_BY_RESULT: dict[ActionResult, type[ViewError]] = {
    ActionResult.UNAUTHORIZED: Unauthenticated,
    ActionResult.TEXT_IS_EMPTY: EmptyText,
    ActionResult.ALREADY_EXISTS: DuplicateReport,
    ActionResult.NOT_FOUND: NotFound,
    ActionResult.INVALID_TARGET: NetworkFailure,
}


def error_for_result(result: ActionResult) -> ViewError | None:
    """Map an action result tag to the error it stands for (None for ok)."""
    if result == ActionResult.OK:
        return None
    return _ERRORS_BY_RESULT[result]()
