"""Byte-level access to the watched transcript document.

The document is UTF-8 in both directions. A leading UTF-8 BOM is tolerated on
read; any other undecodable byte is an error rather than a silent re-decode,
so replies are never appended in a different encoding than the text above
them.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = ["DOCUMENT_ENCODING", "read_text", "append_text", "ensure_file"]

DOCUMENT_ENCODING = "utf-8"


def read_text(path: Path | str, *, normalize_newlines: bool = True) -> str:
    """Decode the document strictly as UTF-8.

    Raises ``UnicodeDecodeError`` for invalid bytes and ``OSError`` for I/O
    failures. ``\\r\\n`` and lone ``\\r`` become ``\\n`` unless disabled.
    """

    text = Path(path).read_bytes().decode("utf-8-sig")
    if normalize_newlines and "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text


def append_text(path: Path | str, content: str) -> int:
    """Append ``content`` at the file's current end and return the new size in bytes.

    The size is re-read from the open handle on every call; text typed into
    the file since the caller last looked is never overwritten.
    """

    data = content.encode(DOCUMENT_ENCODING)
    with open(path, "r+b") as handle:
        size = os.fstat(handle.fileno()).st_size
        handle.seek(size)
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    return size + len(data)


def ensure_file(path: Path | str) -> Path:
    """Create an empty file (and its parent directory) if ``path`` does not exist."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if not target.exists():
        target.touch()
    return target
