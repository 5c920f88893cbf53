"""
EML reader.

Flattens a ``ParsedPart`` tree into a ``Message``: decoded subject and
addresses, the first text and HTML bodies, and every other leaf part as an
attachment.
"""

import logging
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, Union

from emlformat.enums import TransferEncoding
from emlformat.exceptions import ArgumentError, EmlFormatError
from emlformat.formats.rfc5322.addresses import parse_address_list
from emlformat.formats.rfc5322.content import (
    decode_content,
    normalize_transfer_encoding,
    payload_to_text,
)
from emlformat.formats.rfc5322.headers import (
    decode_header_value,
    get_charset,
    get_header_param,
    get_mime_type,
    is_multipart,
    unfold,
)
from emlformat.formats.rfc5322.parser import parse
from emlformat.models import (
    AddressValue,
    Attachment,
    HeaderMap,
    Message,
    ParsedPart,
    PartsBody,
    TextBody,
)
from emlformat.utils import run_callback, text_to_bytes

logger = logging.getLogger(__name__)


def parse_date(date_str: Optional[str]) -> Union[datetime, str, None]:
    """
    Parse the Date header.

    Args:
        date_str: Date string in RFC5322 format

    Returns:
        A datetime, the string unchanged when it cannot be parsed, or None
        when there is no date.
    """
    if not date_str:
        return None

    try:
        return parsedate_to_datetime(unfold(date_str).strip())
    except (TypeError, ValueError, IndexError) as e:
        logger.warning("Could not parse date string '%s': %s", date_str, e)
        return date_str


def _read_addresses(headers: HeaderMap, name: str) -> AddressValue:
    values = headers.get_all(name)
    if not values:
        return None
    addresses = parse_address_list(", ".join(values))
    if isinstance(addresses, list) and not addresses:
        return None
    return addresses


def _append(headers: HeaderMap, content: str, message: Message, log: logging.Logger) -> None:
    """Store a leaf part as the text body, the HTML body or an attachment."""
    content_type = headers.get("Content-Type") or ""
    mime_type = get_mime_type(content_type) or "text/plain"
    charset = get_charset(content_type)
    encoding = normalize_transfer_encoding(headers.get("Content-Transfer-Encoding"))
    disposition = unfold(headers.get("Content-Disposition") or "").strip()
    is_attachment = disposition.lower().startswith("attachment")

    if not is_attachment and mime_type == "text/html" and message.html is None:
        payload = decode_content(content, encoding, charset)
        message.html = payload_to_text(payload, charset, encoding)
        message.html_headers = {
            "Content-Type": content_type,
            "Content-Transfer-Encoding": encoding,
        }
        return

    if not is_attachment and mime_type == "text/plain" and message.text is None:
        payload = decode_content(content, encoding, charset)
        message.text = payload_to_text(payload, charset, encoding)
        message.text_headers = {
            "Content-Type": content_type,
            "Content-Transfer-Encoding": encoding,
        }
        return

    if encoding == TransferEncoding.BINARY.value:
        payload = text_to_bytes(content)
    else:
        payload = decode_content(content, encoding, charset)

    filename = get_header_param(disposition, "filename")
    name = filename or get_header_param(content_type, "name")
    attachment = Attachment(
        name=decode_header_value(name) if name else None,
        content_type=content_type or None,
        inline=disposition.lower().startswith("inline"),
        data=payload,
        filename=decode_header_value(filename) if filename else None,
        mime_type=mime_type,
    )
    content_id = headers.get("Content-ID")
    if content_id:
        attachment.id = unfold(content_id).strip()
        attachment.cid = attachment.id.strip("<>")

    log.debug(
        "Classifying as attachment: type='%s', name='%s', inline=%s, cid='%s'",
        mime_type,
        attachment.name,
        attachment.inline,
        attachment.cid,
    )
    message.attachments.append(attachment)


def _walk(part: ParsedPart, message: Message, log: logging.Logger) -> None:
    """Visit a child part of a multipart body."""
    content_type = part.headers.get("Content-Type")

    if isinstance(part.body, PartsBody):
        if message.multipart_alternative is None and is_multipart(content_type):
            message.multipart_alternative = {"Content-Type": content_type}
        for child in part.body.parts:
            _walk(child, message, log)
    elif isinstance(part.body, TextBody):
        if is_multipart(content_type):
            # Nested multipart whose delimiters were never found
            if message.data is None:
                message.data = part.body.text
        else:
            _append(part.headers, part.body.text, message, log)
    else:
        log.debug("Skipping part %s without body", part.boundary)


def read_part(part: ParsedPart, log: Optional[logging.Logger] = None) -> Message:
    """
    Build a Message from a parsed tree.

    Raises:
        ArgumentError: if the part has no headers
    """
    log = log or logger
    if part is None or part.headers is None:
        raise ArgumentError("Parsed EML has no headers")

    headers = part.headers
    message = Message(headers=headers.copy())
    message.date = parse_date(headers.get("Date"))
    if "Subject" in headers:
        message.subject = decode_header_value(headers.get("Subject"))
    message.from_ = _read_addresses(headers, "From")
    message.to = _read_addresses(headers, "To")
    message.cc = _read_addresses(headers, "Cc")

    content_type = headers.get("Content-Type")
    if isinstance(part.body, PartsBody):
        for child in part.body.parts:
            _walk(child, message, log)
    elif isinstance(part.body, TextBody):
        if is_multipart(content_type):
            message.data = part.body.text
        else:
            _append(headers, part.body.text, message, log)
    return message


def read(
    eml: Union[str, bytes, ParsedPart],
    headers_only: bool = False,
    callback: Optional[Callable[[Optional[Exception], Any], None]] = None,
    log: Optional[logging.Logger] = None,
) -> Message:
    """
    Read EML content, or the result of ``parse``, into a Message.

    Args:
        eml: EML content or a ParsedPart
        headers_only: Only read the top-level headers
        callback: Called once with ``(error, result)`` before returning
        log: Logger receiving tracing output, defaults to the module logger

    Raises:
        ArgumentError: if ``eml`` is neither EML content nor a ParsedPart
        StructuralError: if the MIME structure cannot be walked
    """
    log = log or logger
    try:
        if isinstance(eml, (str, bytes)):
            parsed = parse(eml, headers_only=headers_only, log=log)
        elif isinstance(eml, ParsedPart):
            parsed = eml
        else:
            raise ArgumentError("Missing EML file content!")
        result = read_part(parsed, log)
    except EmlFormatError as e:
        run_callback(callback, e, None)
        raise
    except Exception as e:  # pylint: disable=broad-exception-caught
        log.exception("Unexpected error while reading EML: %s", str(e))
        error = EmlFormatError(f"Failed to read EML: {str(e)}")
        run_callback(callback, error, None)
        raise error from e

    run_callback(callback, None, result)
    return result
