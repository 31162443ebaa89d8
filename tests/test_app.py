"""Tests covering the command-line bootstrap helpers."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from typing import Any

import pytest

from chatmd import app
from chatmd.engine.session import ChatSession
from chatmd.errors import StartupError
from chatmd.services.settings import Settings, SettingsStore

from tests.helpers import FakeCompleter


class _StubAIClient:
    def __init__(self, settings: Any):
        self.settings = settings


class _StubNotifier:
    def __init__(self) -> None:
        self.queue: asyncio.Queue[Path] = asyncio.Queue()
        self.stopped = False

    def start(self) -> asyncio.Queue[Path]:
        return self.queue

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(app, "AIClient", _StubAIClient)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CHATMD_LOG_DIR", str(tmp_path / "logs"))
    for name in ("DEEPSEEK_API_KEY", "CHATMD_API_KEY", "CHATMD_DEBUG", "CHATMD_FORMAT", "CHATMD_CHAT_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_build_client_maps_settings() -> None:
    settings = Settings(api_key="test-key", model="deepseek-chat", request_timeout=12.0, temperature=0.5)

    client = app.build_client(settings)

    assert client.settings.api_key == "test-key"
    assert client.settings.request_timeout == 12.0
    assert client.settings.temperature == 0.5
    assert client.settings.max_retries == 1


def test_build_client_without_key_is_startup_error() -> None:
    with pytest.raises(StartupError):
        app.build_client(Settings(api_key="  "))


def test_coerce_cli_overrides_respects_field_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "request_timeout=45",
            "max_retries=2",
            "debug_logging=yes",
            "temperature=none",
            "default_headers={\"X-Env\": \"dev\"}",
            "chat_file=notes.md",
        ]
    )

    assert overrides == {
        "request_timeout": 45.0,
        "max_retries": 2,
        "debug_logging": True,
        "temperature": None,
        "default_headers": {"X-Env": "dev"},
        "chat_file": "notes.md",
    }


@pytest.mark.parametrize("entry", ["missing-equals", "=value", "unknown_field=1", "debug_logging=maybe"])
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_redacts_api_key(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    stream = io.StringIO()

    app._dump_settings(Settings(api_key="sk-secret-value"), store, overrides={"model": "x"}, stream=stream)

    payload = json.loads(stream.getvalue())
    assert payload["settings"]["api_key"] == "sk***********ue"
    assert payload["meta"]["cli_overrides"] == ["model"]
    assert payload["meta"]["path"] == str(tmp_path / "settings.json")


def test_main_say_appends_user_turn(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"

    exit_code = app.main(["--settings-path", str(settings_path), "--file", "talk.md", "--say", "Hello there"])

    assert exit_code == 0
    assert (tmp_path / "talk.md").read_text(encoding="utf-8") == "\nHello there\n\n"


def test_main_without_api_key_fails_at_startup(tmp_path: Path) -> None:
    exit_code = app.main(["--settings-path", str(tmp_path / "settings.json")])

    assert exit_code == 1


def test_main_with_undecodable_document_fails_at_startup(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test")
    (tmp_path / "chat.md").write_bytes(b"caf\xc3\xa9 \xff\n\n")

    exit_code = app.main(["--settings-path", str(tmp_path / "settings.json")])

    assert exit_code == 1
    assert "Monitoring" not in capsys.readouterr().out


def test_main_rejects_invalid_override(tmp_path: Path) -> None:
    exit_code = app.main(["--settings-path", str(tmp_path / "settings.json"), "--set", "nope"])

    assert exit_code == 2


def test_main_dump_settings_includes_cli_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = app.main(
        ["--settings-path", str(tmp_path / "settings.json"), "--file", "other.md", "--format", "marker", "--dump-settings"]
    )

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["settings"]["chat_file"] == "other.md"
    assert payload["settings"]["transcript_format"] == "marker"


@pytest.mark.asyncio
async def test_run_watcher_processes_ticks_and_stops_notifier(tmp_path: Path) -> None:
    target = tmp_path / "chat.md"
    target.write_text("", encoding="utf-8")
    completer = FakeCompleter(["Hi"])
    session = ChatSession.from_document(target, completer)
    notifier = _StubNotifier()

    task = asyncio.create_task(app.run_watcher(session, debounce_seconds=0, notifier=notifier))  # type: ignore[arg-type]
    target.write_text("Hello\n\n", encoding="utf-8")
    notifier.queue.put_nowait(target)
    for _ in range(100):
        if completer.calls and session.previous:
            break
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert notifier.stopped
    assert target.read_text(encoding="utf-8").endswith("\n***\nHi\n***\n")
