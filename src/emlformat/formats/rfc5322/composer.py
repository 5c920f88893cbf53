"""
EML composer.

Serializes a ``Message`` back into multipart EML text. The output is
deterministic for a given message and boundary, and uses CRLF line endings
throughout.
"""

import logging
import quopri
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from emlformat.enums import TransferEncoding
from emlformat.exceptions import ArgumentError, EmlFormatError
from emlformat.formats.rfc5322.addresses import format_address_list
from emlformat.formats.rfc5322.headers import (
    fold_header_value,
    get_boundary,
    get_charset,
)
from emlformat.formats.rfc5322.reader import read
from emlformat.models import Attachment, Message
from emlformat.settings import get_settings
from emlformat.utils import (
    base64_encode,
    create_boundary,
    normalize_charset_name,
    run_callback,
    wrap,
)

logger = logging.getLogger(__name__)

EOL = "\r\n"
LINE_BREAK_RE = re.compile(r"\r?\n")


def _normalize_newlines(text: str) -> str:
    return LINE_BREAK_RE.sub(EOL, text)


def _encode_text(text: str, charset: Optional[str]) -> bytes:
    try:
        return text.encode(normalize_charset_name(charset), "replace")
    except LookupError:
        return text.encode("utf-8")


def _transfer_encode(text: str, part_headers: Mapping[str, str]) -> str:
    """Encode a body to match the Content-Transfer-Encoding of its headers."""
    lowered = {key.lower(): value for key, value in part_headers.items() if value}
    encoding = (lowered.get("content-transfer-encoding") or "").strip().lower()
    charset = get_charset(lowered.get("content-type"))

    if encoding == TransferEncoding.BASE64.value:
        encoded = base64_encode(_encode_text(text, charset))
        return wrap(encoded, get_settings().BASE64_LINE_LENGTH)
    if encoding == TransferEncoding.QUOTED_PRINTABLE.value:
        encoded = quopri.encodestring(_encode_text(LINE_BREAK_RE.sub("\n", text), charset))
        return _normalize_newlines(encoded.decode("ascii"))
    return _normalize_newlines(text)


def _quote_filename(filename: str) -> str:
    if filename.isascii():
        return filename.replace("\\", "\\\\").replace('"', '\\"')
    encoded = base64_encode(filename.encode("utf-8"))
    return f"=?utf-8?B?{encoded}?="


def _header_lines(name: str, values: List[Optional[str]]) -> List[str]:
    return [
        f"{name}: {fold_header_value(value)}" for value in values if value is not None
    ]


def _text_part(
    boundary: str,
    subtype: str,
    text: str,
    part_headers: Optional[Dict[str, str]],
) -> str:
    chunk = "--" + boundary + EOL
    if part_headers:
        # Caller-supplied headers are written as they are
        for key, value in part_headers.items():
            if value:
                chunk += f"{key}: {fold_header_value(value)}{EOL}"
        body = _transfer_encode(text, part_headers)
    else:
        chunk += f'Content-Type: text/{subtype}; charset="utf-8"{EOL}'
        body = _normalize_newlines(text)
    return chunk + EOL + body + EOL


def _attachment_part(boundary: str, attachment: Attachment, index: int) -> str:
    content_type = attachment.content_type or "application/octet-stream"
    disposition = "inline" if attachment.inline else "attachment"
    filename = attachment.filename or attachment.name or f"attachment_{index}"

    chunk = "--" + boundary + EOL
    chunk += f"Content-Type: {fold_header_value(content_type)}{EOL}"
    chunk += f"Content-Transfer-Encoding: base64{EOL}"
    chunk += f'Content-Disposition: {disposition}; filename="{_quote_filename(filename)}"{EOL}'
    if attachment.cid:
        chunk += f"Content-ID: <{attachment.cid.strip().strip('<>')}>{EOL}"
    chunk += EOL

    data = attachment.data
    if isinstance(data, str):
        data = data.encode("utf-8")
    elif data is None:
        data = b""
    chunk += wrap(base64_encode(data), get_settings().BASE64_LINE_LENGTH) + EOL
    return chunk + EOL


def compose_message(
    message: Message, encode: bool = False, log: Optional[logging.Logger] = None
) -> str:
    """
    Serialize a Message to EML text.

    The caller's message is left untouched; header synthesis happens on a
    copy of its headers.

    Args:
        message: Message to serialize
        encode: Write ``text_headers``/``html_headers`` as given and encode
            the bodies to match them
        log: Logger receiving tracing output

    Raises:
        ArgumentError: if the message has no headers
    """
    log = log or logger
    if message.headers is None:
        raise ArgumentError('Argument "data" expected to have headers')

    headers = message.headers.copy()
    if isinstance(message.subject, str):
        headers["Subject"] = message.subject
    if message.from_ is not None:
        headers["From"] = format_address_list(message.from_)
    if message.to is not None:
        headers["To"] = format_address_list(message.to)
    if message.cc is not None:
        headers["Cc"] = format_address_list(message.cc)
    if "MIME-Version" not in headers:
        headers["MIME-Version"] = "1.0"

    boundary = get_boundary(headers.get("Content-Type"))
    if not boundary:
        boundary = create_boundary()
        headers["Content-Type"] = f'multipart/mixed;{EOL} boundary="{boundary}"'

    lines: List[str] = []
    for name, values in headers.lists():
        lines.extend(_header_lines(name, values))
    eml = EOL.join(lines) + EOL

    part_boundary = boundary
    alternative_boundary = None
    if message.multipart_alternative:
        alternative_type = (
            message.multipart_alternative.get("Content-Type") or "multipart/alternative"
        )
        alternative_boundary = get_boundary(alternative_type)
        if not alternative_boundary:
            alternative_boundary = create_boundary()
            alternative_type = (
                f'{alternative_type.rstrip("; ")};{EOL} boundary="{alternative_boundary}"'
            )
        eml += EOL + "--" + boundary + EOL
        eml += f"Content-Type: {fold_header_value(alternative_type)}{EOL}"
        part_boundary = alternative_boundary

    # Blank line closing the header block
    eml += EOL

    if message.text:
        eml += _text_part(
            part_boundary, "plain", message.text, message.text_headers if encode else None
        )
    if message.html:
        eml += _text_part(
            part_boundary, "html", message.html, message.html_headers if encode else None
        )
    log.debug(
        "Composed bodies, boundary: %s, alternative boundary: %s",
        boundary,
        alternative_boundary,
    )

    if alternative_boundary:
        eml += "--" + alternative_boundary + "--" + EOL + EOL

    for index, attachment in enumerate(message.attachments or [], start=1):
        eml += _attachment_part(boundary, attachment, index)

    eml += "--" + boundary + "--" + EOL
    return eml


def _coerce_message(
    data: Union[Message, Mapping[str, Any], str, bytes], log: logging.Logger
) -> Message:
    if not data:
        raise ArgumentError('Argument "data" expected to be a message or EML content')
    if isinstance(data, Message):
        return data
    if isinstance(data, (str, bytes)):
        return read(data, log=log)
    if isinstance(data, Mapping):
        return Message.from_dict(data)
    raise ArgumentError(
        f'Argument "data" expected to be a message or EML content, got {type(data)}'
    )


def build(
    data: Union[Message, Mapping[str, Any], str, bytes],
    encode: bool = False,
    callback: Optional[Callable[[Optional[Exception], Any], None]] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Build EML text from a Message, its dict form, or EML content.

    Args:
        data: Message to serialize; EML content is read first
        encode: Write the caller's text/html part headers verbatim
        callback: Called once with ``(error, result)`` before returning
        log: Logger receiving tracing output, defaults to the module logger

    Returns:
        The EML text

    Raises:
        ArgumentError: if ``data`` is missing or has no headers
    """
    log = log or logger
    try:
        message = _coerce_message(data, log)
        result = compose_message(message, encode=encode, log=log)
    except EmlFormatError as e:
        run_callback(callback, e, None)
        raise
    except Exception as e:  # pylint: disable=broad-exception-caught
        log.exception("Unexpected error during EML composition: %s", str(e))
        error = EmlFormatError(f"Failed to build EML: {str(e)}")
        run_callback(callback, error, None)
        raise error from e

    run_callback(callback, None, result)
    return result
