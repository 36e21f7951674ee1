"""
User-facing notices raised by the listing flows.

Core code never renders anything. It builds Notice objects and hands them
to a sink; the adapter decides whether a notice becomes a toast, a chat
message or a log line.
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime


class NoticeLevel(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    """A transient message for the user (plain text, no markup)."""

    title: str
    description: str
    level: NoticeLevel = NoticeLevel.INFO
    created_at: datetime = field(default_factory=lambda: datetime.now().astimezone())

    @property
    def is_error(self) -> bool:
        return self.level is NoticeLevel.ERROR


# Callback that receives every notice as it is raised
NoticeSink = Callable[[Notice], None]


class NoticeLog:
    """Keeps every notice in order and forwards it to an optional sink."""

    def __init__(self, sink: NoticeSink | None = None) -> None:
        self.items: list[Notice] = []
        self._sink = sink

    def __call__(self, notice: Notice) -> None:
        self.items.append(notice)
        if self._sink is not None:
            self._sink(notice)

    def info(self, title: str, description: str = "") -> Notice:
        return self._emit(title, description, NoticeLevel.INFO)

    def success(self, title: str, description: str = "") -> Notice:
        return self._emit(title, description, NoticeLevel.SUCCESS)

    def warning(self, title: str, description: str = "") -> Notice:
        return self._emit(title, description, NoticeLevel.WARNING)

    def error(self, title: str, description: str = "") -> Notice:
        return self._emit(title, description, NoticeLevel.ERROR)

    @property
    def last(self) -> Notice | None:
        return self.items[-1] if self.items else None

    def _emit(self, title: str, description: str, level: NoticeLevel) -> Notice:
        notice = Notice(title=title, description=description, level=level)
        self(notice)
        return notice
