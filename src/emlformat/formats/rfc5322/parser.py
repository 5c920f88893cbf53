"""
EML parser.

Turns raw EML text into a tree of ``ParsedPart`` objects. The text is walked
line by line with a small state machine; multipart bodies are cut on their
boundary delimiters and every captured part goes through the same state
machine again, so nesting depth is only limited by ``settings.MAX_DEPTH``.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Union

from emlformat.enums import ParserState
from emlformat.exceptions import ArgumentError, EmlFormatError, StructuralError
from emlformat.formats.rfc5322.headers import get_boundary, is_multipart, unfold
from emlformat.models import HeaderMap, ParsedPart, PartsBody, TextBody
from emlformat.settings import get_settings
from emlformat.utils import run_callback

logger = logging.getLogger(__name__)

LINE_SPLIT_RE = re.compile(r"\r?\n")
HEADER_LINE_RE = re.compile(r"^([\w\-]+):\s*(.*)$", re.ASCII)
EOL = "\r\n"


@dataclass
class RawBoundaryPart:
    """A boundary token and the raw lines captured after its delimiter."""

    boundary: str
    lines: List[str] = field(default_factory=list)


def _is_delimiter(line: str, delimiter: str) -> bool:
    # Transport padding after the delimiter is allowed
    return line.startswith(delimiter) and not line[len(delimiter) :].strip()


def _body_state(
    headers: HeaderMap, log: logging.Logger
) -> Tuple[ParserState, Optional[str]]:
    """Pick the body state announced by the Content-Type of a header block."""
    content_type = headers.get("Content-Type")
    if not is_multipart(content_type):
        return ParserState.IN_BODY_PLAIN, None

    boundary = get_boundary(content_type)
    if boundary is None:
        log.warning(
            "Multipart without boundary, reading body as text: %s",
            unfold(content_type),
        )
        return ParserState.IN_BODY_PLAIN, None
    if not boundary.strip():
        raise StructuralError(
            f"Empty boundary parameter in Content-Type: {unfold(content_type)}"
        )
    log.debug("Multipart with boundary %s", boundary)
    return ParserState.IN_BODY_MULTIPART, boundary


def parse_lines(
    lines: List[str],
    headers_only: bool = False,
    depth: int = 0,
    log: Optional[logging.Logger] = None,
) -> ParsedPart:
    """
    Parse the lines of a message or of a MIME part.

    Args:
        lines: Lines without their line terminators
        headers_only: Stop at the end of the header block
        depth: Multipart nesting level of these lines
        log: Logger receiving tracing output, defaults to the module logger

    Returns:
        The parsed part; its body is None when no body was found or
        ``headers_only`` is set.

    Raises:
        StructuralError: on nesting deeper than ``settings.MAX_DEPTH`` or an
            empty boundary parameter.
    """
    log = log or logger
    max_depth = get_settings().MAX_DEPTH
    if depth > max_depth:
        raise StructuralError(f"Multipart nesting deeper than {max_depth} levels")

    part = ParsedPart()
    state = ParserState.IN_HEADERS
    boundary = None
    delimiter = ""
    closing = ""
    raw_parts: List[RawBoundaryPart] = []
    current: Optional[RawBoundaryPart] = None
    skipping_preamble = False
    body_start = len(lines)
    total = len(lines)

    for index, line in enumerate(lines):
        if state is ParserState.IN_HEADERS:
            if line == "":
                next_line = lines[index + 1] if index + 1 < total else ""
                if next_line.startswith(">"):
                    # Outlook notice ("> This message is in MIME format...")
                    skipping_preamble = True
                    continue
                skipping_preamble = False
                if headers_only:
                    break

                body_start = index + 1
                state, boundary = _body_state(part.headers, log)
                if state is ParserState.IN_BODY_PLAIN:
                    part.body = TextBody(EOL.join(lines[body_start:]))
                    break
                delimiter = "--" + boundary
                closing = delimiter + "--"
                continue

            if skipping_preamble:
                continue

            match = HEADER_LINE_RE.match(line)
            if match:
                part.headers.add(match.group(1), match.group(2))
            elif line[:1] in (" ", "\t"):
                if not part.headers.extend_last(line):
                    log.debug("Continuation line without header: %r", line)
            else:
                log.debug("Skipping malformed header line: %r", line)
            continue

        # Multipart body: opening delimiters do not need a blank line before them
        if _is_delimiter(line, delimiter):
            current = RawBoundaryPart(boundary=line[2:].rstrip())
            raw_parts.append(current)
            state = ParserState.IN_BOUNDARY_PART
            log.debug("Found boundary: %s", current.boundary)
            continue

        if state is ParserState.IN_BOUNDARY_PART:
            next_line = lines[index + 1] if index + 1 < total else ""
            if _is_delimiter(line, closing) and next_line == "":
                log.debug("Closing boundary %s at line %d", boundary, index)
                break
            current.lines.append(line)

    if state in (ParserState.IN_BODY_MULTIPART, ParserState.IN_BOUNDARY_PART):
        if raw_parts:
            children = (complete_boundary(raw, depth + 1, log) for raw in raw_parts)
            part.body = PartsBody([child for child in children if child is not None])
        else:
            log.debug("No delimiter for boundary %s, keeping body as text", boundary)
            part.body = TextBody(EOL.join(lines[body_start:]))

    return part


def complete_boundary(
    raw: RawBoundaryPart,
    depth: int = 1,
    log: Optional[logging.Logger] = None,
) -> Optional[ParsedPart]:
    """
    Turn the raw lines captured for a boundary into a ParsedPart.

    Returns:
        None when the raw part has no boundary token.
    """
    if not raw or not raw.boundary:
        return None
    part = parse_lines(raw.lines, depth=depth, log=log)
    part.boundary = raw.boundary
    return part


def parse(
    eml: Union[str, bytes],
    headers_only: bool = False,
    callback: Optional[Callable[[Optional[Exception], Any], None]] = None,
    log: Optional[logging.Logger] = None,
) -> ParsedPart:
    """
    Parse EML content into a header/body tree.

    Args:
        eml: EML content; bytes are decoded as UTF-8, undecodable bytes are
            kept as surrogate escapes so their charset can be applied later
        headers_only: Only parse the top-level header block
        callback: Called once with ``(error, result)`` before returning
        log: Logger receiving tracing output, defaults to the module logger

    Returns:
        The root ParsedPart

    Raises:
        ArgumentError: if ``eml`` is not text
        StructuralError: if the MIME structure cannot be walked
    """
    log = log or logger
    try:
        if isinstance(eml, bytes):
            eml = eml.decode("utf-8", "surrogateescape")
        if not isinstance(eml, str):
            raise ArgumentError('Argument "eml" expected to be a string')
        result = parse_lines(LINE_SPLIT_RE.split(eml), headers_only=headers_only, log=log)
    except EmlFormatError as e:
        run_callback(callback, e, None)
        raise
    except Exception as e:  # pylint: disable=broad-exception-caught
        log.exception("Unexpected error during EML parsing: %s", str(e))
        error = EmlFormatError(f"Failed to parse EML: {str(e)}")
        run_callback(callback, error, None)
        raise error from e

    run_callback(callback, None, result)
    return result
