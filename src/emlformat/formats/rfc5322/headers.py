"""
Header codec: RFC 2047 encoded words, quoted-printable text and
header parameters.
"""

import logging
import quopri
import re
from typing import Optional
from urllib.parse import unquote

from emlformat.exceptions import DecodeError
from emlformat.utils import (
    base64_decode,
    convert_charset,
    normalize_charset_name,
    text_to_bytes,
    to_text,
)

logger = logging.getLogger(__name__)

ENCODED_WORD_RE = re.compile(r"=\?([^?\s]+)\?([BbQq])\?([^?]*)\?=")
LINE_BREAK_RE = re.compile(r"\r?\n")
TRAILING_WHITESPACE_RE = re.compile(r"[\t ]+(?=\r?\n|\Z)")
SOFT_LINE_BREAK_RE = re.compile(r"=(?:\r?\n|\Z)")


def unfold(value: Optional[str]) -> str:
    """Remove the line breaks of a folded header value."""
    if not value:
        return ""
    return LINE_BREAK_RE.sub("", value)


def fold_header_value(value: str) -> str:
    """
    Prepare a header value for output, making sure every internal line
    break is followed by folding whitespace.
    """
    lines = LINE_BREAK_RE.split(value)
    folded = [lines[0]]
    for line in lines[1:]:
        folded.append(line if line[:1] in (" ", "\t") else " " + line)
    return "\r\n".join(folded)


def _qp_to_bytes(value: str, header: bool = False) -> bytes:
    return quopri.decodestring(text_to_bytes(value), header=header)


def decode_encoded_word(token: str) -> str:
    """
    Decode a single RFC 2047 encoded word.

    Args:
        token: Text of the form ``=?charset?B|Q?payload?=``

    Returns:
        The decoded text, or the token unchanged when it is not a valid
        encoded word.

    Examples:
        >>> decode_encoded_word('=?UTF-8?B?5L2g5aW9?=')
        '你好'
        >>> decode_encoded_word('plain text')
        'plain text'
    """
    match = ENCODED_WORD_RE.fullmatch(token.strip())
    if not match:
        return token

    # RFC 2231 allows a language suffix: =?utf-8*en?Q?...?=
    charset = normalize_charset_name(match.group(1).split("*", 1)[0])
    encoding = match.group(2).upper()
    payload = match.group(3)
    try:
        if encoding == "B":
            raw = base64_decode(payload, strict=True)
        else:
            raw = _qp_to_bytes(payload, header=True)
        return convert_charset(raw, charset)
    except DecodeError as e:
        logger.debug("Leaving undecodable encoded word as is: %s", e)
        return token


def decode_header_value(raw: Optional[str]) -> str:
    """
    Decode every encoded word of a header value, unfold it and strip the
    surrounding whitespace.

    Whitespace separating two adjacent encoded words is dropped, as
    required by RFC 2047 section 6.2.
    """
    if not raw:
        return ""

    pieces = []
    position = 0
    previous_was_word = False
    for match in ENCODED_WORD_RE.finditer(raw):
        gap = raw[position : match.start()]
        if not (previous_was_word and gap.strip() == ""):
            pieces.append(gap)
        pieces.append(decode_encoded_word(match.group(0)))
        previous_was_word = True
        position = match.end()
    pieces.append(raw[position:])
    return unfold("".join(pieces)).strip()


def decode_quoted_printable(value: str, charset: Optional[str] = None) -> str:
    """
    Decode a quoted-printable body.

    Trailing whitespace is stripped from every line and soft line breaks are
    removed before the ``=XX`` escapes are decoded and the bytes converted
    from ``charset``.
    """
    if not value:
        return ""
    cleaned = TRAILING_WHITESPACE_RE.sub("", value)
    cleaned = SOFT_LINE_BREAK_RE.sub("", cleaned)
    return to_text(_qp_to_bytes(cleaned), charset)


def get_header_param(value: Optional[str], name: str) -> Optional[str]:
    """
    Extract a parameter from a structured header value.

    Handles quoted and unquoted values as well as the RFC 2231 extended form
    ``name*=charset'lang'percent-encoded``.

    Returns:
        The parameter value, an empty string for an empty parameter, or None
        when the parameter is absent.

    Examples:
        >>> get_header_param('multipart/mixed; boundary="abc"', 'boundary')
        'abc'
        >>> get_header_param("attachment; filename*=utf-8''na%C3%AFve.txt", 'filename')
        'naïve.txt'
    """
    if not value:
        return None
    unfolded = unfold(value)
    escaped = re.escape(name)

    extended = re.search(
        r'(?:^|[;\s])%s\*\s*=\s*(?:"([^"]*)"|([^;\s]*))' % escaped,
        unfolded,
        re.IGNORECASE,
    )
    if extended:
        raw = extended.group(1) if extended.group(1) is not None else extended.group(2)
        charset, quote, rest = raw.partition("'")
        if not quote:
            return unquote(raw)
        encoded = rest.partition("'")[2]
        try:
            return unquote(encoded, encoding=charset or "utf-8", errors="replace")
        except LookupError:
            return unquote(encoded, errors="replace")

    match = re.search(
        r'(?:^|[;\s])%s\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^;\s]*))' % escaped,
        unfolded,
        re.IGNORECASE,
    )
    if not match:
        return None
    if match.group(1) is not None:
        return re.sub(r"\\(.)", r"\1", match.group(1))
    return match.group(2)


def get_boundary(content_type: Optional[str]) -> Optional[str]:
    """Return the ``boundary`` parameter of a Content-Type value."""
    return get_header_param(content_type, "boundary")


def get_charset(content_type: Optional[str]) -> Optional[str]:
    """Return the ``charset`` parameter of a Content-Type value."""
    charset = get_header_param(content_type, "charset")
    if charset is None:
        return None
    return charset.strip("\"' ") or None


def get_mime_type(content_type: Optional[str]) -> str:
    """Return the lower-cased ``type/subtype`` of a Content-Type value."""
    if not content_type:
        return ""
    return unfold(content_type).split(";", 1)[0].strip().lower()


def is_multipart(content_type: Optional[str]) -> bool:
    return get_mime_type(content_type).startswith("multipart/")
