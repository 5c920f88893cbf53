"""
emlformat: parse EML (RFC5322/MIME) content into structured data and build
EML content back from it.
"""

from emlformat.exceptions import (
    ArgumentError,
    DecodeError,
    EmlFormatError,
    StructuralError,
)
from emlformat.formats.rfc5322 import (
    build,
    decode_encoded_word,
    decode_header_value,
    format_address_list,
    parse,
    parse_address_list,
    read,
)
from emlformat.models import (
    Attachment,
    EmailAddress,
    HeaderMap,
    Message,
    ParsedPart,
    PartsBody,
    TextBody,
)

__version__ = "0.1.0"

__all__ = [
    "parse",
    "read",
    "build",
    "decode_encoded_word",
    "decode_header_value",
    "parse_address_list",
    "format_address_list",
    "Attachment",
    "EmailAddress",
    "HeaderMap",
    "Message",
    "ParsedPart",
    "PartsBody",
    "TextBody",
    "EmlFormatError",
    "ArgumentError",
    "StructuralError",
    "DecodeError",
]
