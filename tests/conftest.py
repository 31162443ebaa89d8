"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from chatmd.transcript.formats import SEPARATOR


@pytest.fixture
def chat_file(tmp_path: Path) -> Path:
    """An empty transcript document inside the test's temporary directory."""

    target = tmp_path / "chat.md"
    target.write_text("", encoding="utf-8")
    return target


@pytest.fixture
def long_history() -> str:
    """Fourteen alternating turns joined by the plain separator."""

    return SEPARATOR.join(f"{'Q' if index % 2 == 0 else 'A'}{index}" for index in range(14))
