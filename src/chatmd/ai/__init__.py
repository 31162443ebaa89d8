"""Completion service client."""

from .client import AIClient, ClientSettings

__all__ = ["AIClient", "ClientSettings"]
