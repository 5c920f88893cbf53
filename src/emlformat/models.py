"""
Data structures produced and consumed by the EML parser, reader and composer.

``ParsedPart`` is the raw header/body tree returned by ``parse``; ``Message``
is the flattened view returned by ``read`` and accepted by ``build``.
"""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from emlformat.exceptions import ArgumentError

HeaderInput = Union[str, List[str]]


class HeaderMap:
    """
    Ordered header mapping with case-preserving names and case-insensitive lookup.

    Every name holds the ordered list of its values: a single value for a
    header seen once, several values when the name repeats.
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, HeaderInput]]] = None):
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        self._last_key: Optional[str] = None
        for name, value in items or ():
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(name, item)
            else:
                self.add(name, value)

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, HeaderInput]]) -> "HeaderMap":
        """Build a HeaderMap from a ``{name: value or [values]}`` mapping."""
        return cls((mapping or {}).items())

    @staticmethod
    def _key(name: str) -> str:
        if not name or not name.strip():
            raise ArgumentError("Header names cannot be empty")
        return name.strip().lower()

    def add(self, name: str, value: str) -> None:
        """Append a value, turning the header into a multi-valued one on repeat."""
        key = self._key(name)
        if key in self._entries:
            self._entries[key][1].append(value)
        else:
            self._entries[key] = (name.strip(), [value])
        self._last_key = key

    def extend_last(self, text: str) -> bool:
        """
        Append a folded continuation line to the most recent header value.

        Returns:
            False when no header has been added yet.
        """
        if self._last_key is None or self._last_key not in self._entries:
            return False
        values = self._entries[self._last_key][1]
        values[-1] += "\r\n" + text
        return True

    def __setitem__(self, name: str, value: HeaderInput) -> None:
        key = self._key(name)
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        # Replacing keeps the position of the header it overwrites
        self._entries[key] = (name.strip(), values)
        self._last_key = key

    def __getitem__(self, name: str) -> str:
        return self._entries[name.lower()][1][0]

    def __delitem__(self, name: str) -> None:
        del self._entries[name.lower()]
        if self._last_key == name.lower():
            self._last_key = None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return list(self.lists()) == list(other.lists())

    def __repr__(self) -> str:
        return f"HeaderMap({self.to_dict()!r})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of a header."""
        entry = self._entries.get(name.lower())
        return entry[1][0] if entry else default

    def get_all(self, name: str) -> List[str]:
        """Return every value of a header, in order of appearance."""
        entry = self._entries.get(name.lower())
        return list(entry[1]) if entry else []

    def is_multi(self, name: str) -> bool:
        """Tell whether a header appeared more than once."""
        return len(self.get_all(name)) > 1

    def remove(self, name: str) -> None:
        """Remove a header if present."""
        if name in self:
            del self[name]

    def lists(self) -> Iterator[Tuple[str, List[str]]]:
        """Iterate ``(name, values)`` pairs in insertion order."""
        for name, values in self._entries.values():
            yield name, list(values)

    def items(self) -> Iterator[Tuple[str, HeaderInput]]:
        """Iterate ``(name, value)`` pairs, value being a list for repeated headers."""
        for name, values in self._entries.values():
            yield name, (list(values) if len(values) > 1 else values[0])

    def to_dict(self) -> Dict[str, HeaderInput]:
        return dict(self.items())

    def copy(self) -> "HeaderMap":
        return HeaderMap(self.lists())


@dataclass
class TextBody:
    """A body kept as literal text."""

    text: str


@dataclass
class PartsBody:
    """A multipart body made of child parts."""

    parts: List["ParsedPart"] = field(default_factory=list)


Body = Union[TextBody, PartsBody]


@dataclass
class ParsedPart:
    """Headers plus body of a message or of one of its MIME parts."""

    headers: HeaderMap = field(default_factory=HeaderMap)
    body: Optional[Body] = None
    # Delimiter token that opened this part, None for the message itself
    boundary: Optional[str] = None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"headers": self.headers.to_dict()}
        if self.boundary is not None:
            result["boundary"] = self.boundary
        if isinstance(self.body, TextBody):
            result["body"] = self.body.text
        elif isinstance(self.body, PartsBody):
            result["body"] = [part.to_dict() for part in self.body.parts]
        return result


@dataclass
class EmailAddress:
    """A display name and e-mail address pair."""

    name: str = ""
    email: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email}


AddressValue = Union[EmailAddress, List[EmailAddress], str, None]


@dataclass
class Attachment:
    """A non-body MIME part."""

    name: Optional[str] = None
    content_type: Optional[str] = None
    inline: bool = False
    data: Union[str, bytes] = b""
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    id: Optional[str] = None
    cid: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "content_type": self.content_type,
            "inline": self.inline,
        }
        if isinstance(self.data, bytes):
            result["data"] = base64.b64encode(self.data).decode("ascii")
            result["data_encoding"] = "base64"
        else:
            result["data"] = self.data
        for key in ("filename", "mime_type", "id", "cid"):
            if getattr(self, key) is not None:
                result[key] = getattr(self, key)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Attachment":
        payload = data.get("data", b"")
        if data.get("data_encoding") == "base64" and isinstance(payload, str):
            payload = base64.b64decode(payload)
        return cls(
            name=data.get("name"),
            content_type=data.get("content_type", data.get("contentType")),
            inline=bool(data.get("inline", False)),
            data=payload,
            filename=data.get("filename"),
            mime_type=data.get("mime_type", data.get("mimeType")),
            id=data.get("id"),
            cid=data.get("cid"),
        )


@dataclass
class Message:
    """User-facing view of an EML message."""

    date: Union[datetime, str, None] = None
    subject: Optional[str] = None
    from_: AddressValue = None
    to: AddressValue = None
    cc: AddressValue = None
    headers: HeaderMap = field(default_factory=HeaderMap)
    text: Optional[str] = None
    text_headers: Optional[Dict[str, str]] = None
    html: Optional[str] = None
    html_headers: Optional[Dict[str, str]] = None
    multipart_alternative: Optional[Dict[str, str]] = None
    attachments: List[Attachment] = field(default_factory=list)
    # Text of parts that carried no usable headers or boundaries
    data: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        result: Dict[str, Any] = {
            "date": format_datetime(self.date)
            if isinstance(self.date, datetime)
            else self.date,
            "subject": self.subject,
            "from": _addresses_to_dict(self.from_),
            "to": _addresses_to_dict(self.to),
            "cc": _addresses_to_dict(self.cc),
            "headers": self.headers.to_dict() if self.headers is not None else None,
        }
        for key in ("text", "text_headers", "html", "html_headers"):
            if getattr(self, key) is not None:
                result[key] = getattr(self, key)
        if self.multipart_alternative is not None:
            result["multipart_alternative"] = self.multipart_alternative
        result["attachments"] = [att.to_dict() for att in self.attachments]
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build a Message from the mapping produced by ``to_dict``."""
        if not isinstance(data, Mapping):
            raise ArgumentError("Message data must be a mapping")
        date = data.get("date")
        if isinstance(date, str) and date:
            try:
                date = parsedate_to_datetime(date)
            except (TypeError, ValueError):
                pass  # Unparsable dates are kept as given
        headers = data.get("headers")
        return cls(
            date=date,
            subject=data.get("subject"),
            from_=_addresses_from_dict(data.get("from", data.get("from_"))),
            to=_addresses_from_dict(data.get("to")),
            cc=_addresses_from_dict(data.get("cc")),
            headers=HeaderMap.from_mapping(headers) if headers is not None else None,
            text=data.get("text"),
            text_headers=data.get("text_headers", data.get("textheaders")),
            html=data.get("html"),
            html_headers=data.get("html_headers", data.get("htmlheaders")),
            multipart_alternative=data.get(
                "multipart_alternative", data.get("multipartAlternative")
            ),
            attachments=[
                Attachment.from_dict(item) for item in data.get("attachments") or []
            ],
            data=data.get("data"),
        )


def _addresses_to_dict(value: AddressValue) -> Any:
    if isinstance(value, EmailAddress):
        return value.to_dict()
    if isinstance(value, list):
        return [item.to_dict() for item in value]
    return value


def _addresses_from_dict(value: Any) -> AddressValue:
    if isinstance(value, Mapping):
        return EmailAddress(name=value.get("name") or "", email=value.get("email") or "")
    if isinstance(value, list):
        return [_addresses_from_dict(item) for item in value]
    return value
