"""
Address parsing and formatting for From/To/Cc style headers.
"""

import logging
import re
from typing import Any, List, Mapping, Union

from flanker.addresslib import address

from emlformat.formats.rfc5322.headers import decode_header_value, unfold
from emlformat.models import AddressValue, EmailAddress

logger = logging.getLogger(__name__)

QUOTED_ONLY_RE = re.compile(r'^"((?:[^"\\]|\\.)*)"$', re.DOTALL)
NAME_AND_EMAIL_RE = re.compile(r"^(.*?)\s*<([^<>]*)>\s*(?:\(.*\))?$", re.DOTALL)
ESCAPE_RE = re.compile(r"\\(.)")


def split_address_list(raw: str) -> List[str]:
    """
    Split a header value on the commas that separate addresses.

    Commas inside double quotes or angle brackets do not split.

    Examples:
        >>> split_address_list('"Doe, John" <john@example.com>, jane@example.com')
        ['"Doe, John" <john@example.com>', ' jane@example.com']
    """
    parts = []
    current = []
    in_quotes = False
    in_angle = False
    escaped = False
    for char in raw:
        if escaped:
            escaped = False
        elif char == "\\" and in_quotes:
            escaped = True
        elif char == '"' and not in_angle:
            in_quotes = not in_quotes
        elif char == "<" and not in_quotes:
            in_angle = True
        elif char == ">" and not in_quotes:
            in_angle = False
        elif char == "," and not in_quotes and not in_angle:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _clean_name(name: str) -> str:
    name = name.strip()
    quoted = QUOTED_ONLY_RE.match(name)
    if quoted:
        name = ESCAPE_RE.sub(r"\1", quoted.group(1))
    return name.strip()


def parse_address(token: str) -> EmailAddress:
    """
    Parse one address that might include a display name.

    Tokens flanker cannot parse are matched leniently as ``name <email>``,
    or taken as a bare address.

    Examples:
        >>> parse_address('user@example.com')
        EmailAddress(name='', email='user@example.com')
        >>> parse_address('User <user@example.com>')
        EmailAddress(name='User', email='user@example.com')
    """
    if not token:
        return EmailAddress()

    parsed = address.parse(token)
    if isinstance(parsed, address.EmailAddress):
        return EmailAddress(name=_clean_name(parsed.display_name or ""), email=parsed.address)

    logger.debug("flanker could not parse %r, matching leniently", token)
    match = NAME_AND_EMAIL_RE.match(token)
    if match:
        return EmailAddress(name=_clean_name(match.group(1)), email=match.group(2).strip())
    return EmailAddress(email=token.strip())


def parse_address_list(raw: str) -> Union[List[EmailAddress], EmailAddress]:
    """
    Parse a From/To/Cc header value.

    Args:
        raw: Header value, possibly folded and RFC 2047 encoded

    Returns:
        An empty list when no address was found, the single EmailAddress when
        there is exactly one, the list of addresses otherwise.

    Examples:
        >>> parse_address_list('"A" <a@x.com>, b@y.com')
        [EmailAddress(name='A', email='a@x.com'), EmailAddress(name='', email='b@y.com')]
        >>> parse_address_list('PayPal <noreply@paypal.com>')
        EmailAddress(name='PayPal', email='noreply@paypal.com')
    """
    if not raw:
        return []

    tokens = [decode_header_value(token).strip() for token in split_address_list(unfold(raw))]
    addresses: List[EmailAddress] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue

        if QUOTED_ONLY_RE.match(token):
            # Display name only, the address follows in the next token
            entry = EmailAddress(name=_clean_name(token))
            if index < len(tokens):
                following = NAME_AND_EMAIL_RE.match(tokens[index])
                if following and not following.group(1).strip():
                    entry.email = following.group(2).strip()
                    index += 1
        else:
            entry = parse_address(token)

        if not entry.name and not entry.email:
            logger.debug("Dropping empty address fragment: %r", token)
            continue
        addresses.append(entry)

    if len(addresses) == 1:
        return addresses[0]
    return addresses


def format_address(address: Union[EmailAddress, Mapping[str, Any]]) -> str:
    """
    Format one address as ``"name" <email>``.

    Examples:
        >>> format_address(EmailAddress('PayPal', 'noreply@paypal.com'))
        '"PayPal" <noreply@paypal.com>'
        >>> format_address(EmailAddress('', 'user@example.com'))
        '<user@example.com>'
    """
    if isinstance(address, Mapping):
        name = address.get("name") or ""
        email = address.get("email") or ""
    else:
        name = address.name or ""
        email = address.email or ""

    pieces = []
    name = _clean_name(name)
    if name:
        pieces.append('"%s"' % name.replace("\\", "\\\\").replace('"', '\\"'))
    if email.strip():
        pieces.append("<%s>" % email.strip())
    return " ".join(pieces)


def format_address_list(addresses: AddressValue) -> str:
    """
    Format one or more addresses for a header, joined with ``", "``.

    Strings are returned unchanged and None gives an empty string.
    """
    if addresses is None:
        return ""
    if isinstance(addresses, str):
        return addresses
    if isinstance(addresses, (EmailAddress, Mapping)):
        return format_address(addresses)
    formatted = (format_address(address) for address in addresses)
    return ", ".join(item for item in formatted if item)
