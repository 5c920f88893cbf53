"""
Low-level helpers used by the RFC5322 codec.

Charset handling is delegated to flanker so that the aliases and
misdeclared charsets found in real mail are handled the same way the rest of
the mail stack handles them.
"""

import base64
import binascii
import codecs
import logging
import re
import uuid
from typing import Any, Callable, Optional

from flanker.mime.message.charsets import convert_to_unicode

from emlformat.exceptions import DecodeError
from emlformat.settings import get_settings

logger = logging.getLogger(__name__)

SURROGATE_RE = re.compile("[\udc80-\udcff]")
WHITESPACE_RE = re.compile(r"\s+")

# Charsets whose base64 payloads are converted to UTF-8 bytes when decoded
DOUBLE_BYTE_CHARSETS = ("gbk", "gb2312", "gb18030")


def normalize_charset_name(name: Optional[str]) -> str:
    """
    Return the canonical codec name for a charset label.

    Unknown labels are returned lower-cased so flanker can still try its own
    alias table on them.

    Examples:
        >>> normalize_charset_name('UTF8')
        'utf-8'
        >>> normalize_charset_name('"ISO-8859-2"')
        'iso8859-2'
    """
    if not name:
        return get_settings().DEFAULT_CHARSET
    cleaned = name.strip().strip("\"'").lower()
    if not cleaned:
        return get_settings().DEFAULT_CHARSET
    try:
        return codecs.lookup(cleaned).name
    except LookupError:
        return cleaned


def is_utf8(charset: Optional[str]) -> bool:
    """Tell whether a charset label designates UTF-8."""
    return normalize_charset_name(charset) == "utf-8"


def is_double_byte_charset(charset: Optional[str]) -> bool:
    """Tell whether a charset belongs to the GB family."""
    return normalize_charset_name(charset) in DOUBLE_BYTE_CHARSETS


def convert_charset(value: bytes, charset: str) -> str:
    """
    Convert bytes declared in ``charset`` to text.

    Raises:
        DecodeError: if the bytes cannot be converted.
    """
    try:
        return convert_to_unicode(charset, value)
    except (LookupError, UnicodeError, ValueError) as e:
        raise DecodeError(f"Cannot convert payload from {charset}: {e}") from e


def to_text(value: bytes, charset: Optional[str]) -> str:
    """
    Convert bytes to text, degrading to a byte-per-character decode.
    """
    charset = normalize_charset_name(charset)
    try:
        return convert_charset(value, charset)
    except DecodeError as e:
        logger.warning("Falling back to latin-1 for undecodable payload: %s", e)
        return value.decode("latin-1")


def has_raw_bytes(text: str) -> bool:
    """Tell whether text carries undecoded bytes as surrogate escapes."""
    return bool(SURROGATE_RE.search(text))


def text_to_bytes(text: str) -> bytes:
    """Encode text back to bytes, restoring surrogate-escaped raw bytes."""
    return text.encode("utf-8", "surrogateescape")


def base64_decode(value: str, strict: bool = False) -> bytes:
    """
    Decode base64 text, ignoring whitespace and missing padding.

    Characters outside the base64 alphabet are dropped, unless ``strict``
    is set, in which case they raise.

    Raises:
        DecodeError: if the text is not valid base64.
    """
    cleaned = WHITESPACE_RE.sub("", value)
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned.encode("ascii"), validate=strict)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def base64_encode(data: bytes) -> str:
    """Encode bytes as a single line of base64 text."""
    return base64.b64encode(data).decode("ascii")


def create_boundary() -> str:
    """Create a unique multipart boundary token."""
    return get_settings().BOUNDARY_PREFIX + uuid.uuid4().hex


def wrap(text: str, width: int) -> str:
    """Cut text into lines of at most ``width`` characters joined with CRLF."""
    if width <= 0:
        return text
    return "\r\n".join(text[i : i + width] for i in range(0, len(text), width))


def run_callback(
    callback: Optional[Callable[[Optional[Exception], Any], None]],
    error: Optional[Exception],
    result: Any,
) -> None:
    """Invoke an optional completion hook with ``(error, result)``."""
    if callback is not None:
        callback(error, result)
