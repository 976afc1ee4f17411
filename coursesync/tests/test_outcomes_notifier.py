"""
Unit tests for outcome classification and notice dispatch.

The notifier is presentation policy only: it must map outcomes to levels,
format the optional display name and never let a failing sink escape.
"""
from __future__ import annotations

import logging

import pytest

from coursesync.sync.outcomes import DEFAULT_MESSAGES, NoticeLevel, Notifier, Outcome, OutcomeKind, classify
from coursesync.sync.results import DuplicateConflict, ErrorKind, RemoteError, RemoteFailure, Unauthenticated


@pytest.mark.parametrize(
    "outcome,ok,sign_in,retry",
    [
        (Outcome.success(), True, False, False),
        (Outcome.already_done(RemoteError.from_code("23505")), True, False, False),
        (Outcome.blocked(), False, True, False),
        (Outcome.failed(), False, False, True),
    ],
)
def test_outcome_policy(outcome, ok, sign_in, retry):
    assert outcome.ok is ok
    assert outcome.needs_sign_in is sign_in
    assert outcome.retryable is retry
    assert classify(outcome) is outcome.kind


def test_remote_error_from_code_distinguishes_duplicates():
    assert RemoteError.from_code("23505").is_duplicate
    assert RemoteError.from_code(23505).is_duplicate
    assert not RemoteError.from_code("23503").is_duplicate
    assert not RemoteError.from_code(None).is_duplicate


@pytest.mark.parametrize(
    "outcome,level",
    [
        (Outcome.success(), NoticeLevel.SUCCESS),
        (Outcome.already_done(), NoticeLevel.INFO),
        (Outcome.blocked(), NoticeLevel.ERROR),
        (Outcome.failed(), NoticeLevel.ERROR),
    ],
)
def test_notice_levels_for_enrollment(sink, outcome, level):
    notice = Notifier(sink).notify("enrollment", "create", outcome)
    assert notice is not None
    assert notice.level is level
    assert sink.notices == [notice]


def test_follow_notice_uses_display_name(sink):
    notice = Notifier(sink).notify("instructor_follow", "create", Outcome.success(), name="Ada Lovelace")
    assert notice is not None
    assert notice.message == "Now following Ada Lovelace."


def test_missing_template_stays_silent(sink):
    assert ("lesson_progress", "create", OutcomeKind.SUCCESS) not in DEFAULT_MESSAGES
    notice = Notifier(sink).notify("lesson_progress", "create", Outcome.success())
    assert notice is None
    assert sink.notices == []


def test_custom_catalog_replaces_defaults(sink):
    notifier = Notifier(sink, messages={("widget", "create", OutcomeKind.FAILED): "nope"})
    assert notifier.notify("enrollment", "create", Outcome.failed()) is None
    assert notifier.notify("widget", "create", Outcome.failed()).message == "nope"


def test_sink_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture):
    class BrokenSink:
        def show(self, notice):
            raise RuntimeError("toast crashed")

    with caplog.at_level(logging.WARNING, logger="coursesync.sync"):
        notice = Notifier(BrokenSink()).notify("saved_post", "create", Outcome.success())
    assert notice is not None
    assert any("Notification sink failed" in r.getMessage() for r in caplog.records)


def test_raise_for_outcome_maps_taxonomy():
    Outcome.success().raise_for_outcome()
    Outcome.already_done(RemoteError.from_code("23505")).raise_for_outcome()
    assert Outcome.already_done().error_class is DuplicateConflict

    with pytest.raises(Unauthenticated):
        Outcome.blocked().raise_for_outcome()
    with pytest.raises(RemoteFailure, match="timeout"):
        Outcome.failed(RemoteError(kind=ErrorKind.OTHER, message="timeout")).raise_for_outcome()
