"""Comment input: text box with editor/preview modes.

Used by the comments panel (create), by comment views for editing (edit)
and for replying (reply). Submission goes through an ``on_submit``
callback supplied by the owning view.
"""

from collections.abc import Awaitable, Callable
from typing import Literal

import structlog

from typehero.auth.session import Session

from .errors import NetworkFailure
from .notices import Toaster


logger = structlog.get_logger(__name__)

InputMode = Literal["create", "edit", "reply"]
ViewMode = Literal["editor", "preview"]
MarkdownRenderer = Callable[[str], str]

LOGIN_REQUIRED = "You need to be logged in to comment."
DEFAULT_PLACEHOLDER = "Enter your comment here."


def plain_text(text: str) -> str:
    """Fallback renderer: no Markdown, text is shown as typed."""
    return text


class CommentInput:
    """State of one comment text box."""

    def __init__(
        self,
        mode: InputMode,
        session: Session,
        toaster: Toaster,
        on_submit: Callable[[], Awaitable[None]],
        on_cancel: Callable[[], None] | None = None,
        value: str = "",
        placeholder: str | None = None,
        render_markdown: MarkdownRenderer = plain_text,
    ):
        self.mode = mode
        self.session = session
        self.toaster = toaster
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.value = value
        self.placeholder = placeholder or DEFAULT_PLACEHOLDER
        self.render_markdown = render_markdown
        self.view_mode: ViewMode = "editor"
        self.is_submitting = False

    # ==========================================================================
    # Display
    # ==========================================================================

    def change(self, text: str) -> None:
        self.value = text

    def toggle_preview(self) -> None:
        self.view_mode = "preview" if self.view_mode == "editor" else "editor"

    @property
    def preview_html(self) -> str:
        return self.render_markdown(self.value)

    @property
    def can_submit(self) -> bool:
        return bool(self.value) and not self.is_submitting

    @property
    def can_cancel(self) -> bool:
        return self.mode != "create"

    def cancel(self) -> None:
        if self.can_cancel and self.on_cancel:
            self.on_cancel()

    # ==========================================================================
    # Submission
    # ==========================================================================

    def _require_session(self) -> bool:
        if self.session.is_authenticated:
            return True
        self.toaster.toast(LOGIN_REQUIRED, variant="destructive")
        return False

    async def _run_submit(self) -> bool:
        if not self._require_session():
            return False

        self.is_submitting = True
        try:
            await self.on_submit()
        except Exception as e:
            logger.error(
                "comment_input_submit_failed",
                mode=self.mode,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.toaster.notify_error(NetworkFailure())
            return False
        finally:
            self.is_submitting = False
            self.view_mode = "editor"
        return True

    async def submit(self) -> bool:
        """Run the submit callback.

        Returns:
            True if the callback ran to completion
        """
        if not self.can_submit:
            return False
        return await self._run_submit()

    async def handle_key(self, key: str, shift: bool = False) -> bool:
        """Shift+Enter submits; keys pressed mid-submit are swallowed.

        Returns:
            True if the key was consumed
        """
        if self.is_submitting:
            return True
        if shift and key == "Enter":
            await self._run_submit()
            return True
        return False
