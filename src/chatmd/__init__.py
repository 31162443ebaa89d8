"""chatmd: chat with a completion service from inside a plain-text document."""

__version__ = "0.1.0"
