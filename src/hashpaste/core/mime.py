# src/hashpaste/core/mime.py
"""Presentation MIME type detection for uploaded pastes.

Detection order:
1. Content sniffing with libmagic (python-magic)
2. Filename extension (mimetypes), when the client supplied a filename
3. UTF-8 validity: decodable content is served as text/plain
4. application/octet-stream

libmagic answers "text/plain" or "application/octet-stream" when it has no
real opinion, so those results fall through to the next step instead of
short-circuiting it.
"""

from __future__ import annotations

import mimetypes

import magic

from hashpaste.core.logging import get_logger

__all__ = ["DEFAULT_MIME_TYPE", "TEXT_MIME_TYPE", "detect_mime_type"]

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
TEXT_MIME_TYPE = "text/plain; charset=utf-8"

# libmagic only needs the head of the buffer
_SNIFF_BYTES = 8192

_INCONCLUSIVE = frozenset(
    {
        "application/octet-stream",
        "text/plain",
        "inode/x-empty",
        "application/x-empty",
    }
)


def _is_utf8(content: bytes) -> bool:
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _with_charset(mime_type: str, content: bytes) -> str:
    if mime_type.startswith("text/") and "charset" not in mime_type and _is_utf8(content):
        return f"{mime_type}; charset=utf-8"
    return mime_type


def _sniff(content: bytes) -> str | None:
    try:
        sniffed = magic.from_buffer(content[:_SNIFF_BYTES], mime=True)
    except magic.MagicException as e:
        logger.debug("mime.sniff_failed", error=str(e))
        return None
    if not sniffed or sniffed in _INCONCLUSIVE:
        return None
    return sniffed


def detect_mime_type(content: bytes, filename: str | None = None) -> str:
    """Pick the Content-Type a paste is served with.

    Args:
        content: Paste bytes
        filename: Optional client-supplied filename (cosmetic)

    Returns:
        MIME type string, with ``charset=utf-8`` appended for UTF-8 text
    """
    sniffed = _sniff(content)
    if sniffed is not None:
        return _with_charset(sniffed, content)

    if filename:
        guessed, _ = mimetypes.guess_type(filename, strict=False)
        if guessed is not None:
            return _with_charset(guessed, content)

    if _is_utf8(content):
        return TEXT_MIME_TYPE
    return DEFAULT_MIME_TYPE
