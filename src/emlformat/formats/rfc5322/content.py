"""
Content decoder: turns a part body into text or bytes according to its
Content-Transfer-Encoding and charset.
"""

import logging
from typing import Optional, Union

from emlformat.enums import RAW_BYTE_ENCODINGS, TransferEncoding
from emlformat.exceptions import DecodeError
from emlformat.formats.rfc5322.headers import decode_quoted_printable
from emlformat.utils import (
    base64_decode,
    has_raw_bytes,
    is_double_byte_charset,
    is_utf8,
    normalize_charset_name,
    text_to_bytes,
    to_text,
)

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]


def normalize_transfer_encoding(value: Optional[str]) -> str:
    """Lower-case a Content-Transfer-Encoding value, '' when absent."""
    return (value or "").strip().lower()


def is_raw_byte_encoding(encoding: str) -> bool:
    """Tell whether an encoding carries raw bytes ('8bit', 'binary', '8bitmime', ...)."""
    return encoding.startswith(RAW_BYTE_ENCODINGS)


def decode_content(
    content: Payload,
    transfer_encoding: Optional[str] = None,
    charset: Optional[str] = None,
) -> Payload:
    """
    Undo the transfer encoding of a part body.

    Args:
        content: Body as found in the message
        transfer_encoding: Content-Transfer-Encoding header value
        charset: Charset declared by the part Content-Type

    Returns:
        bytes for base64 bodies, text for quoted-printable and raw 8bit
        bodies in a non UTF-8 charset; anything else is returned unchanged.
    """
    encoding = normalize_transfer_encoding(transfer_encoding)
    charset = normalize_charset_name(charset)

    if encoding == TransferEncoding.BASE64.value:
        text = content.decode("ascii", "replace") if isinstance(content, bytes) else content
        try:
            payload = base64_decode(text)
        except DecodeError as e:
            logger.warning("Keeping undecodable base64 body as is: %s", e)
            return content
        if is_double_byte_charset(charset):
            return to_text(payload, charset).encode("utf-8")
        return payload

    if encoding == TransferEncoding.QUOTED_PRINTABLE.value:
        text = content.decode("latin-1") if isinstance(content, bytes) else content
        return decode_quoted_printable(text, charset)

    if is_raw_byte_encoding(encoding) and not is_utf8(charset):
        if isinstance(content, bytes):
            return to_text(content, charset)
        if has_raw_bytes(content):
            return to_text(text_to_bytes(content), charset)
        return content

    if encoding and encoding != TransferEncoding.SEVEN_BIT.value:
        logger.debug("Unknown transfer encoding %r, leaving body unchanged", encoding)
    return content


def payload_to_text(
    payload: Payload,
    charset: Optional[str] = None,
    transfer_encoding: Optional[str] = None,
) -> str:
    """
    Turn a decoded payload into text for the text and html slots of a message.
    """
    charset = normalize_charset_name(charset)
    if isinstance(payload, bytes):
        encoding = normalize_transfer_encoding(transfer_encoding)
        if encoding == TransferEncoding.BASE64.value and is_double_byte_charset(charset):
            # Already converted to UTF-8 by decode_content
            return to_text(payload, "utf-8")
        return to_text(payload, charset)
    if has_raw_bytes(payload):
        return to_text(text_to_bytes(payload), charset)
    return payload
