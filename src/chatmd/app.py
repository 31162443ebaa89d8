"""Command-line bootstrap for the chatmd document watcher."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from dotenv import find_dotenv, load_dotenv

from .ai.client import AIClient, ClientSettings
from .engine.session import ChatSession
from .engine.watcher import ChangeNotifier, WatchLoop
from .errors import ChatmdError, StartupError
from .services.settings import Settings, SettingsStore, redact_secret
from .transcript.formats import TranscriptFormat
from .transcript.writer import append_user_turn
from .utils import file_io
from .utils import logging as logging_utils
from .utils.telemetry import TelemetryClient, telemetry_enabled

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging for the watcher process."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:  # pragma: no cover - defensive path
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def build_client(settings: Settings, *, debug_logging: bool = False) -> AIClient:
    """Construct the completion client; a missing API key is a startup failure."""

    if not settings.api_key.strip():
        raise StartupError(
            "API key not found: set CHATMD_API_KEY or DEEPSEEK_API_KEY (a .env file works too)."
        )
    client_settings = ClientSettings(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        temperature=settings.temperature,
        default_headers=settings.default_headers,
        debug_logging=debug_logging or settings.debug_logging,
    )
    return AIClient(client_settings)


async def run_watcher(
    session: ChatSession,
    *,
    debounce_seconds: float = 0.05,
    notifier: ChangeNotifier | None = None,
) -> None:
    """Watch ``session``'s document until cancelled."""

    active_notifier = notifier or ChangeNotifier(session.path)
    queue = active_notifier.start()
    _LOGGER.info("Chat monitor started for %s (%s format)", session.path, session.format.value)
    loop = WatchLoop(session, queue, debounce_seconds=debounce_seconds)
    try:
        await loop.run()
    finally:
        active_notifier.stop()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``chatmd`` console script."""

    load_dotenv(find_dotenv(usecwd=True))
    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("CHATMD_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("CHATMD_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    if args.file:
        overrides["chat_file"] = args.file
    if args.format:
        overrides["transcript_format"] = args.format

    settings = load_settings(resolved_path, store=store, overrides=overrides or None)
    if args.dump_settings:
        _dump_settings(settings, store, overrides=overrides)
        return 0

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)
        debug = True

    try:
        fmt = TranscriptFormat.from_value(settings.transcript_format)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    chat_path = Path(settings.chat_file).expanduser()

    if args.say is not None:
        file_io.ensure_file(chat_path)
        try:
            append_user_turn(chat_path, args.say, fmt)
        except ChatmdError as exc:
            _LOGGER.error("Error: %s", exc)
            return 1
        return 0

    telemetry = TelemetryClient(enabled=telemetry_enabled(settings))
    try:
        client = build_client(settings, debug_logging=debug)
        file_io.ensure_file(chat_path)
        session = ChatSession.from_document(chat_path, client, fmt=fmt, telemetry=telemetry)
    except (ChatmdError, OSError) as exc:
        _LOGGER.critical("Startup failed: %s", exc)
        return 1

    print(f"Monitoring {chat_path} for new messages...")
    print("Type your message and press Enter twice to send.")
    try:
        asyncio.run(_serve(session, client, debounce_seconds=settings.debounce_seconds))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    except StartupError as exc:
        _LOGGER.critical("Startup failed: %s", exc)
        return 1
    finally:
        telemetry.flush()
    return 0


async def _serve(session: ChatSession, client: AIClient, *, debounce_seconds: float) -> None:
    try:
        await run_watcher(session, debounce_seconds=debounce_seconds)
    finally:
        with contextlib.suppress(Exception):
            await client.aclose()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chatmd",
        description="Watch a text document and answer each message completed with a blank line.",
    )
    parser.add_argument("--file", metavar="PATH", help="Document to watch (default: chat.md).")
    parser.add_argument(
        "--format",
        choices=[item.value for item in TranscriptFormat],
        help="Transcript convention: plain '***' separators or coloured span markers.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--say",
        metavar="TEXT",
        help="Append TEXT as a finished user message and exit.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.chatmd/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and target is not str:
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is dict:
        try:
            return json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("CHATMD_"))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
