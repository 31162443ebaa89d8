"""Tests for appending turns to the transcript document."""

from __future__ import annotations

from pathlib import Path

import pytest

from chatmd.errors import DocumentWriteError
from chatmd.transcript.detector import DetectionOutcome, detect
from chatmd.transcript.formats import TranscriptFormat
from chatmd.transcript.parser import parse
from chatmd.transcript.writer import append_reply, append_user_turn


def test_append_reply_uses_plain_separator_block(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("Hello\n\n", encoding="utf-8")

    size = append_reply(target, "Hi there\n")

    content = target.read_text(encoding="utf-8")
    assert content == "Hello\n\n\n***\nHi there\n***\n"
    assert size == len(content.encode("utf-8"))
    assert parse(content)[-1].role == "assistant"


def test_append_reply_keeps_text_typed_after_read(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("Hello\n\n", encoding="utf-8")
    with target.open("a", encoding="utf-8") as handle:
        handle.write("typed meanwhile")

    append_reply(target, "Reply")

    assert target.read_text(encoding="utf-8").startswith("Hello\n\ntyped meanwhile\n***\nReply")


def test_append_reply_in_marker_format_wraps_every_line(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("Question\n\n", encoding="utf-8")

    append_reply(target, "line one\n\nline two", TranscriptFormat.MARKER)

    content = target.read_text(encoding="utf-8")
    assert content.endswith(
        '\n<span style="color: orange">line one</span>\n<span style="color: orange">line two</span>\n'
    )
    assert detect("Question\n\n", content, TranscriptFormat.MARKER).outcome is (
        DetectionOutcome.WAITING_FOR_TERMINATOR
    )


def test_append_reply_missing_file_raises_write_error(tmp_path: Path) -> None:
    missing = tmp_path / "absent.md"

    with pytest.raises(DocumentWriteError) as excinfo:
        append_reply(missing, "Reply")

    assert excinfo.value.path == missing
    assert not missing.exists()


def test_append_user_turn_adds_send_terminator(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("", encoding="utf-8")

    append_user_turn(target, "Hello")

    content = target.read_text(encoding="utf-8")
    assert content == "\nHello\n\n"
    detection = detect("", content)
    assert detection.is_new_turn
    assert detection.text == "Hello"


def test_append_user_turn_without_send(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("", encoding="utf-8")

    append_user_turn(target, "Draft", TranscriptFormat.MARKER, send=False)

    assert target.read_text(encoding="utf-8") == '\n<span style="color: blue">Draft</span>\n'
