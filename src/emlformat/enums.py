"""
Enums shared by the EML parser and content decoder.
"""

from enum import Enum


class ParserState(Enum):
    """States of the line-oriented header/body state machine."""

    IN_HEADERS = "in_headers"
    IN_BODY_PLAIN = "in_body_plain"
    IN_BODY_MULTIPART = "in_body_multipart"
    IN_BOUNDARY_PART = "in_boundary_part"


class TransferEncoding(str, Enum):
    """Content-Transfer-Encoding values the content decoder knows about."""

    BASE64 = "base64"
    QUOTED_PRINTABLE = "quoted-printable"
    SEVEN_BIT = "7bit"
    EIGHT_BIT = "8bit"
    BINARY = "binary"


# '8bitmime' and 'binarymime' show up in the wild as well
RAW_BYTE_ENCODINGS = (TransferEncoding.EIGHT_BIT.value, TransferEncoding.BINARY.value)
