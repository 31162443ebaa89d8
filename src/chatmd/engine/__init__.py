"""Watch loop orchestration around the transcript engine."""

from .session import ChatSession, TickResult, TickState
from .watcher import ChangeNotifier, WatchLoop

__all__ = ["ChatSession", "ChangeNotifier", "TickResult", "TickState", "WatchLoop"]
