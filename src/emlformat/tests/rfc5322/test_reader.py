"""Tests for the EML reader."""
# pylint: disable=redefined-outer-name

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from emlformat.exceptions import ArgumentError
from emlformat.formats.rfc5322.parser import parse
from emlformat.formats.rfc5322.reader import parse_date, read, read_part
from emlformat.models import EmailAddress, ParsedPart


class TestReadSimple:
    """Tests for single-part messages."""

    def test_fields(self, simple_eml):
        """Test the decoded subject, addresses, date and text."""
        message = read(simple_eml)
        assert message.subject == "你好"
        assert message.from_ == EmailAddress(name="PayPal", email="noreply@paypal.com")
        assert message.to == [
            EmailAddress(name="Alice", email="alice@example.com"),
            EmailAddress(name="", email="bob@example.com"),
        ]
        assert message.cc is None
        assert message.date == datetime(
            2020, 1, 29, 15, 47, 12, tzinfo=timezone(timedelta(hours=1))
        )
        assert message.text == "Hello world\r\n"
        assert message.html is None
        assert message.attachments == []

    def test_text_headers(self, simple_eml):
        """Test that the headers of the text part are recorded."""
        message = read(simple_eml)
        assert message.text_headers == {
            "Content-Type": "text/plain; charset=utf-8",
            "Content-Transfer-Encoding": "",
        }

    def test_headers_copied(self, simple_eml):
        """Test that the message headers are the parsed headers."""
        tree = parse(simple_eml)
        message = read(tree)
        assert message.headers == tree.headers
        assert message.headers is not tree.headers

    def test_headers_only(self, simple_eml):
        """Test that headers_only skips the body."""
        message = read(simple_eml, headers_only=True)
        assert message.subject == "你好"
        assert message.text is None

    def test_missing_content_type_is_plain_text(self):
        """Test that a part without Content-Type is read as text."""
        message = read("Subject: hi\r\n\r\nhello")
        assert message.text == "hello"

    def test_subject_on_continuation_line(self):
        """Test a Subject whose value starts on a folded line."""
        message = read("Subject:\r\n =?UTF-8?B?5L2g5aW9?=\r\n\r\nbody")
        assert message.subject == "你好"

    def test_cc_header_case(self):
        """Test that the Cc header is found whatever its case."""
        message = read("CC: Carol <carol@example.com>\r\n\r\nbody")
        assert message.cc == EmailAddress(name="Carol", email="carol@example.com")

    def test_8bit_latin1_bytes(self):
        """Test a raw 8bit body in its declared charset."""
        eml = (
            b"Subject: accents\r\n"
            b"Content-Type: text/plain; charset=iso-8859-1\r\n"
            b"Content-Transfer-Encoding: 8bit\r\n"
            b"\r\n"
            b"caf\xe9"
        )
        assert read(eml).text == "café"

    def test_base64_text_body(self):
        """Test a base64 encoded text body."""
        eml = (
            "Content-Type: text/plain; charset=utf-8\r\n"
            "Content-Transfer-Encoding: base64\r\n"
            "\r\n"
            "Y2Fmw6k=\r\n"
        )
        assert read(eml).text == "café"


class TestReadMultipart:
    """Tests for multipart messages."""

    def test_nested(self, nested_eml):
        """Test text, html and attachment of a nested message."""
        message = read(nested_eml)
        assert message.subject == "Nested"
        assert message.cc == EmailAddress(name="Carol", email="carol@example.com")
        assert message.text.startswith("Café au lait")
        assert "<p>Café</p>" in message.html
        assert message.multipart_alternative == {
            "Content-Type": 'multipart/alternative; boundary="inner"'
        }
        assert message.text_headers["Content-Transfer-Encoding"] == "quoted-printable"

        assert len(message.attachments) == 1
        attachment = message.attachments[0]
        assert attachment.name == "report.pdf"
        assert attachment.filename == "report.pdf"
        assert attachment.mime_type == "application/pdf"
        assert attachment.content_type == 'application/pdf; name="report.pdf"'
        assert attachment.inline is False
        assert attachment.data == b"%PDF-1.4\n"

    def test_attachment_before_alternative(self, attachment_first_eml):
        """Test that part order does not change the result."""
        message = read(attachment_first_eml)
        assert message.text == "plain body\r\n"
        assert message.html == "<b>html body</b>\r\n"
        assert len(message.attachments) == 1

        image = message.attachments[0]
        assert image.inline is True
        assert image.id == "<dot@example.com>"
        assert image.cid == "dot@example.com"
        assert image.name == "dot.png"
        assert image.data.startswith(b"\x89PNG")

    def test_text_attachment_with_disposition(self):
        """Test that a text part marked as attachment is not the body."""
        eml = (
            'Content-Type: multipart/mixed; boundary="m"\r\n'
            "\r\n"
            "--m\r\n"
            "Content-Type: text/plain\r\n"
            "\r\n"
            "body\r\n"
            "--m\r\n"
            "Content-Type: text/plain\r\n"
            'Content-Disposition: attachment; filename="notes.txt"\r\n'
            "\r\n"
            "notes\r\n"
            "--m--\r\n"
        )
        message = read(eml)
        assert message.text == "body"
        assert message.attachments[0].name == "notes.txt"
        assert message.attachments[0].data == "notes"

    def test_second_text_part_is_attachment(self):
        """Test that only the first text/plain part fills the text slot."""
        eml = (
            'Content-Type: multipart/mixed; boundary="m"\r\n'
            "\r\n"
            "--m\r\n"
            "Content-Type: text/plain\r\n"
            "\r\n"
            "first\r\n"
            "--m\r\n"
            "Content-Type: text/plain\r\n"
            "\r\n"
            "second\r\n"
            "--m--\r\n"
        )
        message = read(eml)
        assert message.text == "first"
        assert [attachment.data for attachment in message.attachments] == ["second"]

    def test_encoded_filename(self):
        """Test that RFC 2047 and RFC 2231 filenames are decoded."""
        eml = (
            'Content-Type: multipart/mixed; boundary="m"\r\n'
            "\r\n"
            "--m\r\n"
            'Content-Type: application/octet-stream; name="=?UTF-8?B?5L2g5aW9?=.bin"\r\n'
            "Content-Transfer-Encoding: base64\r\n"
            "\r\n"
            "AAE=\r\n"
            "--m\r\n"
            "Content-Type: application/octet-stream\r\n"
            "Content-Transfer-Encoding: base64\r\n"
            "Content-Disposition: attachment; filename*=utf-8''na%C3%AFve.bin\r\n"
            "\r\n"
            "AAE=\r\n"
            "--m--\r\n"
        )
        first, second = read(eml).attachments
        assert first.name == "你好.bin"
        assert first.filename is None
        assert second.name == "naïve.bin"
        assert second.data == b"\x00\x01"

    def test_multipart_without_delimiters_goes_to_data(self):
        """Test that an unsplittable multipart body is kept in data."""
        eml = 'Content-Type: multipart/mixed; boundary="nope"\r\n\r\nraw text\r\n'
        message = read(eml)
        assert message.data == "raw text\r\n"
        assert message.text is None

    def test_idempotent(self, nested_eml):
        """Test that reading the same tree twice gives equal messages."""
        tree = parse(nested_eml)
        assert read(tree) == read(tree)


class TestParseDate:
    """Tests for Date header parsing."""

    def test_valid(self):
        """Test an RFC5322 date."""
        result = parse_date("Mon, 20 Nov 1995 19:12:08 -0500")
        assert result == datetime(
            1995, 11, 20, 19, 12, 8, tzinfo=timezone(timedelta(hours=-5))
        )

    def test_invalid_kept_as_string(self):
        """Test that an unparsable date is returned as given."""
        assert parse_date("not a date") == "not a date"

    def test_missing(self):
        """Test that no date gives None."""
        assert parse_date(None) is None
        assert parse_date("") is None


class TestReadArguments:
    """Tests for argument handling."""

    @pytest.mark.parametrize("value", [None, 42, ["Subject: x"]])
    def test_invalid_input(self, value):
        """Test that anything but EML content or a ParsedPart is rejected."""
        with pytest.raises(ArgumentError):
            read(value)

    def test_part_without_headers(self):
        """Test that a tree without headers is rejected."""
        with pytest.raises(ArgumentError):
            read_part(ParsedPart(headers=None))

    def test_callback(self, simple_eml):
        """Test that the callback is called once with the message."""
        callback = Mock()
        message = read(simple_eml, callback=callback)
        callback.assert_called_once_with(None, message)
