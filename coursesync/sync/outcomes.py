"""
Mutation outcomes and the notification policy.

Why:
    The outcome of a create/remove is computed without side effects. Turning
    it into a toast is a separate step performed by `Notifier`, which only
    talks to an external sink. Cache state never depends on notification.

Policy:
    - success and already-done are caller successes (the desired end-state holds)
    - blocked-unauthenticated should prompt sign-in
    - failed should suggest a retry
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Type

from .ports import NotificationSinkProtocol
from .records import Record
from .results import DuplicateConflict, RemoteError, RemoteFailure, SyncError, Unauthenticated

logger = logging.getLogger("coursesync.sync")


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    ALREADY_DONE = "already-done"
    BLOCKED_UNAUTHENTICATED = "blocked-unauthenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    record: Optional[Record] = None
    error: Optional[RemoteError] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.ALREADY_DONE)

    @property
    def needs_sign_in(self) -> bool:
        return self.kind is OutcomeKind.BLOCKED_UNAUTHENTICATED

    @property
    def retryable(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    @property
    def error_class(self) -> Optional[Type[SyncError]]:
        return _ERROR_CLASSES.get(self.kind)

    def raise_for_outcome(self) -> None:
        """Raise for blocked or failed outcomes; already-done is a success and never raises."""
        if self.ok:
            return
        cls = self.error_class or RemoteFailure
        raise cls(self.error.message if self.error is not None else self.kind.value)

    @classmethod
    def success(cls, record: Optional[Record] = None) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, record=record)

    @classmethod
    def already_done(cls, error: Optional[RemoteError] = None) -> "Outcome":
        return cls(OutcomeKind.ALREADY_DONE, error=error)

    @classmethod
    def blocked(cls) -> "Outcome":
        return cls(OutcomeKind.BLOCKED_UNAUTHENTICATED)

    @classmethod
    def failed(cls, error: Optional[RemoteError] = None) -> "Outcome":
        return cls(OutcomeKind.FAILED, error=error)


_ERROR_CLASSES: Dict[OutcomeKind, Type[SyncError]] = {
    OutcomeKind.ALREADY_DONE: DuplicateConflict,
    OutcomeKind.BLOCKED_UNAUTHENTICATED: Unauthenticated,
    OutcomeKind.FAILED: RemoteFailure,
}


def classify(outcome: Outcome) -> OutcomeKind:
    return outcome.kind


# ----------------------------- Notices ---------------------------------------


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    resource: str
    action: str
    outcome: OutcomeKind


_LEVELS: Dict[OutcomeKind, NoticeLevel] = {
    OutcomeKind.SUCCESS: NoticeLevel.SUCCESS,
    OutcomeKind.ALREADY_DONE: NoticeLevel.INFO,
    OutcomeKind.BLOCKED_UNAUTHENTICATED: NoticeLevel.ERROR,
    OutcomeKind.FAILED: NoticeLevel.ERROR,
}

# (resource, action, outcome) -> message template; `{name}` is the optional
# display name passed by the caller (e.g. the instructor's name).
DEFAULT_MESSAGES: Mapping[Tuple[str, str, OutcomeKind], str] = {
    ("enrollment", "create", OutcomeKind.SUCCESS): "Enrolled in the course.",
    ("enrollment", "create", OutcomeKind.ALREADY_DONE): "You are already enrolled in this course.",
    ("enrollment", "create", OutcomeKind.BLOCKED_UNAUTHENTICATED): "Please sign in to enroll in this course.",
    ("enrollment", "create", OutcomeKind.FAILED): "Could not enroll in the course. Please try again.",
    ("enrollment", "remove", OutcomeKind.SUCCESS): "Left the course.",
    ("enrollment", "remove", OutcomeKind.FAILED): "Could not leave the course. Please try again.",
    ("lesson_progress", "create", OutcomeKind.FAILED): "Could not save your lesson progress. Please try again.",
    ("instructor_follow", "create", OutcomeKind.SUCCESS): "Now following {name}.",
    ("instructor_follow", "create", OutcomeKind.ALREADY_DONE): "You already follow this instructor.",
    ("instructor_follow", "create", OutcomeKind.BLOCKED_UNAUTHENTICATED): "Please sign in to follow instructors.",
    ("instructor_follow", "create", OutcomeKind.FAILED): "Could not follow the instructor. Please try again.",
    ("instructor_follow", "remove", OutcomeKind.SUCCESS): "Unfollowed {name}.",
    ("instructor_follow", "remove", OutcomeKind.FAILED): "Could not unfollow. Please try again.",
    ("saved_post", "create", OutcomeKind.SUCCESS): "Post saved to your favorites.",
    ("saved_post", "create", OutcomeKind.ALREADY_DONE): "Post is already in your favorites.",
    ("saved_post", "create", OutcomeKind.BLOCKED_UNAUTHENTICATED): "Please sign in to save posts.",
    ("saved_post", "create", OutcomeKind.FAILED): "Could not save the post. Please try again.",
    ("saved_post", "remove", OutcomeKind.SUCCESS): "Post removed from your favorites.",
    ("saved_post", "remove", OutcomeKind.BLOCKED_UNAUTHENTICATED): "Please sign in to save posts.",
    ("saved_post", "remove", OutcomeKind.FAILED): "Could not remove the post. Please try again.",
}


class Notifier:
    """Dispatch a notice for an outcome to the sink, if a message exists.

    Resources without a catalog entry for an outcome stay silent (e.g. lesson
    completion success), mirroring the UI which only toasts where it matters.
    """

    def __init__(self, sink: NotificationSinkProtocol, messages: Optional[Mapping[Tuple[str, str, OutcomeKind], str]] = None) -> None:
        self._sink = sink
        self._messages = dict(DEFAULT_MESSAGES if messages is None else messages)

    def notice_for(self, resource: str, action: str, outcome: Outcome, *, name: Optional[str] = None) -> Optional[Notice]:
        kind = classify(outcome)
        template = self._messages.get((resource, action, kind))
        if template is None:
            return None
        message = template.format(name=name or "this instructor")
        return Notice(level=_LEVELS[kind], message=message, resource=resource, action=action, outcome=kind)

    def notify(self, resource: str, action: str, outcome: Outcome, *, name: Optional[str] = None) -> Optional[Notice]:
        notice = self.notice_for(resource, action, outcome, name=name)
        if notice is None:
            return None
        try:
            self._sink.show(notice)
        except Exception as exc:
            logger.warning("Notification sink failed: %s", exc.__class__.__name__)
        return notice


__all__ = [
    "OutcomeKind",
    "Outcome",
    "classify",
    "NoticeLevel",
    "Notice",
    "DEFAULT_MESSAGES",
    "Notifier",
]
