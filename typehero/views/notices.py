"""Non-blocking notices (toasts) shown after comment actions."""

from dataclasses import dataclass, field
from typing import Literal

import structlog

from .errors import ViewError


logger = structlog.get_logger(__name__)

NoticeVariant = Literal["default", "success", "destructive"]


@dataclass(frozen=True)
class Notice:
    title: str
    description: str = ""
    variant: NoticeVariant = "default"


@dataclass
class Toaster:
    """Collects notices for the view layer to display."""

    notices: list[Notice] = field(default_factory=list)

    def toast(
        self,
        title: str,
        description: str = "",
        variant: NoticeVariant = "default",
    ) -> Notice:
        notice = Notice(title=title, description=description, variant=variant)
        self.notices.append(notice)
        logger.info("notice_shown", title=title, variant=variant)
        return notice

    def notify_error(self, error: ViewError) -> Notice:
        """Show the short user-facing message for ``error``."""
        return self.toast(error.title, error.description, variant="destructive")

    @property
    def last(self) -> Notice | None:
        return self.notices[-1] if self.notices else None

    def clear(self) -> None:
        self.notices.clear()
