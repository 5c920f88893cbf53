"""
RFC5322 email format package.

This package provides functionality for parsing EML content into a
header/body tree, reading it into a message, and building EML content back
from a message.
"""

from .addresses import (
    format_address,
    format_address_list,
    parse_address,
    parse_address_list,
    split_address_list,
)
from .composer import build, compose_message
from .content import decode_content, payload_to_text
from .headers import (
    decode_encoded_word,
    decode_header_value,
    decode_quoted_printable,
    get_boundary,
    get_charset,
    get_header_param,
)
from .parser import RawBoundaryPart, complete_boundary, parse, parse_lines
from .reader import parse_date, read, read_part

__all__ = [
    # Header codec
    "decode_encoded_word",
    "decode_header_value",
    "decode_quoted_printable",
    "get_boundary",
    "get_charset",
    "get_header_param",
    # Addresses
    "parse_address",
    "parse_address_list",
    "split_address_list",
    "format_address",
    "format_address_list",
    # Content
    "decode_content",
    "payload_to_text",
    # Parser
    "RawBoundaryPart",
    "parse",
    "parse_lines",
    "complete_boundary",
    # Reader
    "read",
    "read_part",
    "parse_date",
    # Composer
    "build",
    "compose_message",
]
