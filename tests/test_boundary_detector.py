"""Tests for the message-boundary detector."""

from __future__ import annotations

import pytest

from chatmd.transcript.detector import DetectionOutcome, detect
from chatmd.transcript.formats import TranscriptFormat, format_assistant_turn, format_user_turn, wrap_line


@pytest.mark.parametrize(
    "document",
    ["", "Hello", "Hello\n", "Q1\n***\nA1\n***\nQ2", "trailing spaces\n \n", "Q\n\n \n"],
)
@pytest.mark.parametrize("previous", ["", "something else"])
def test_documents_without_terminator_are_waiting(previous: str, document: str) -> None:
    if document == previous:
        pytest.skip("identical snapshots are covered by the no-change test")

    detection = detect(previous, document)

    assert detection.outcome is DetectionOutcome.WAITING_FOR_TERMINATOR
    assert detection.advances_snapshot


@pytest.mark.parametrize("document", ["", "Hi\n\n", "Q1\n***\nA1\n***\nQ2\n\n", "text"])
def test_identical_snapshots_are_no_change(document: str) -> None:
    detection = detect(document, document)

    assert detection.outcome is DetectionOutcome.NO_CHANGE
    assert not detection.advances_snapshot


def test_first_message_in_empty_document() -> None:
    detection = detect("", "Hello\n\n")

    assert detection.outcome is DetectionOutcome.NEW_USER_TURN
    assert detection.text == "Hello"
    assert detection.preceding_text == ""


def test_unchanged_terminated_document_is_no_change() -> None:
    assert detect("Hi\n\n", "Hi\n\n").outcome is DetectionOutcome.NO_CHANGE


def test_message_after_previous_turns() -> None:
    detection = detect("Q1\n***\nA1\n***\nQ2\n", "Q1\n***\nA1\n***\nQ2\n\n")

    assert detection.is_new_turn
    assert detection.text == "Q2"
    assert detection.preceding_text == "Q1\n***\nA1"


def test_blank_line_right_after_separator_is_not_a_message() -> None:
    detection = detect("Q1\n***\nA1\n***\n", "Q1\n***\nA1\n***\n\n")

    assert detection.outcome is DetectionOutcome.WAITING_FOR_TERMINATOR
    assert detection.advances_snapshot


def test_whitespace_only_document_is_not_a_message() -> None:
    assert detect("", "  \n\n").outcome is DetectionOutcome.WAITING_FOR_TERMINATOR


def test_blank_lines_inside_history_do_not_trigger() -> None:
    previous = "Q1\n\nstill Q1\n***\nA1\n***\n"
    current = previous + "draft"

    assert detect(previous, current).outcome is DetectionOutcome.WAITING_FOR_TERMINATOR


def test_message_after_written_reply_keeps_full_user_turn() -> None:
    document = "Q1\n\n" + format_assistant_turn("A1") + "Line one\n\nLine two\n\n"

    detection = detect("", document)

    assert detection.is_new_turn
    assert detection.text == "Line one\n\nLine two"


def test_own_reply_does_not_end_with_terminator() -> None:
    before = "Hello\n\n"
    after = before + format_assistant_turn("Hi")

    assert detect(before, after).outcome is DetectionOutcome.WAITING_FOR_TERMINATOR


def test_user_turn_appended_via_formatter_is_detected() -> None:
    base = "Q1\n\n" + format_assistant_turn("A1")
    document = base + format_user_turn("Q2") + "\n"

    detection = detect(base, document)

    assert detection.text == "Q2"
    assert detection.preceding_text.rstrip().endswith("A1")


def test_marker_format_detects_new_user_line() -> None:
    previous = wrap_line("Hello", "blue") + "\n" + wrap_line("Hi!", "orange") + "\n"
    current = previous + "How are you?\n\n"

    detection = detect(previous, current, TranscriptFormat.MARKER)

    assert detection.is_new_turn
    assert detection.text == "How are you?"
    assert detection.preceding_text == previous


def test_marker_format_skips_when_last_line_is_reply() -> None:
    current = "Hello\n" + wrap_line("Hi!", "orange") + "\n\n"

    detection = detect("Hello\n", current, TranscriptFormat.MARKER)

    assert detection.outcome is DetectionOutcome.ASSISTANT_TAIL
    assert detection.advances_snapshot


def test_marker_format_ignores_heading_only_document() -> None:
    detection = detect("", "# Conversation\n\n", TranscriptFormat.MARKER)

    assert detection.outcome is DetectionOutcome.WAITING_FOR_TERMINATOR
