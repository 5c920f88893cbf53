"""Fixtures shared by the emlformat tests."""
# pylint: disable=redefined-outer-name

import pytest

from emlformat.settings import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Make sure every test reads the settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def simple_eml():
    """A single-part plain text message."""
    return (
        "Date: Wed, 29 Jan 2020 15:47:12 +0100\r\n"
        'From: "PayPal" <noreply@paypal.com>\r\n'
        "To: Alice <alice@example.com>, bob@example.com\r\n"
        "Subject: =?UTF-8?B?5L2g5aW9?=\r\n"
        "Content-Type: text/plain; charset=utf-8\r\n"
        "\r\n"
        "Hello world\r\n"
    )


@pytest.fixture
def nested_eml():
    """A multipart/mixed message holding a multipart/alternative and a PDF."""
    return (
        "From: sender@example.com\r\n"
        "To: recipient@example.com\r\n"
        "Cc: Carol <carol@example.com>\r\n"
        "Subject: Nested\r\n"
        "MIME-Version: 1.0\r\n"
        'Content-Type: multipart/mixed; boundary="outer"\r\n'
        "\r\n"
        "This is a multi-part message in MIME format.\r\n"
        "\r\n"
        "--outer\r\n"
        'Content-Type: multipart/alternative; boundary="inner"\r\n'
        "\r\n"
        "--inner\r\n"
        "Content-Type: text/plain; charset=utf-8\r\n"
        "Content-Transfer-Encoding: quoted-printable\r\n"
        "\r\n"
        "Caf=C3=A9 au lait\r\n"
        "\r\n"
        "--inner\r\n"
        "Content-Type: text/html; charset=utf-8\r\n"
        "\r\n"
        "<p>Café</p>\r\n"
        "\r\n"
        "--inner--\r\n"
        "\r\n"
        "--outer\r\n"
        'Content-Type: application/pdf; name="report.pdf"\r\n'
        "Content-Transfer-Encoding: base64\r\n"
        'Content-Disposition: attachment; filename="report.pdf"\r\n'
        "\r\n"
        "JVBERi0xLjQK\r\n"
        "\r\n"
        "--outer--\r\n"
    )


@pytest.fixture
def attachment_first_eml():
    """Same content as nested_eml with the attachment before the alternative part."""
    return (
        "From: sender@example.com\r\n"
        "Subject: Reordered\r\n"
        'Content-Type: multipart/mixed; boundary="outer"\r\n'
        "\r\n"
        "--outer\r\n"
        'Content-Type: image/png; name="dot.png"\r\n'
        "Content-Transfer-Encoding: base64\r\n"
        "Content-Disposition: inline\r\n"
        "Content-ID: <dot@example.com>\r\n"
        "\r\n"
        "iVBORw0KGgo=\r\n"
        "\r\n"
        "--outer\r\n"
        'Content-Type: multipart/alternative; boundary="inner"\r\n'
        "\r\n"
        "--inner\r\n"
        "Content-Type: text/plain\r\n"
        "\r\n"
        "plain body\r\n"
        "\r\n"
        "--inner\r\n"
        "Content-Type: text/html\r\n"
        "\r\n"
        "<b>html body</b>\r\n"
        "\r\n"
        "--inner--\r\n"
        "\r\n"
        "--outer--\r\n"
    )


@pytest.fixture
def outlook_eml():
    """A message whose body starts with the Outlook MIME notice."""
    return (
        "From: outlook@example.com\r\n"
        "Subject: Outlook\r\n"
        'Content-type: multipart/mixed; boundary="b1"\r\n'
        "\r\n"
        "> This message is in MIME format. Since your mail reader does not understand\r\n"
        "this format, some or all of this message may not be legible.\r\n"
        "\r\n"
        "--b1\r\n"
        "Content-type: text/plain; charset=us-ascii\r\n"
        "\r\n"
        "Sent from Outlook\r\n"
        "\r\n"
        "--b1--\r\n"
    )


def nest_multipart(levels):
    """Build a part nested ``levels`` multipart levels deep around a text leaf."""
    if levels == 0:
        return "Content-Type: text/plain\r\n\r\nleaf\r\n"
    boundary = f"level{levels}"
    return (
        f'Content-Type: multipart/mixed; boundary="{boundary}"\r\n'
        "\r\n"
        f"--{boundary}\r\n"
        f"{nest_multipart(levels - 1)}"
        "\r\n"
        f"--{boundary}--\r\n"
    )


@pytest.fixture
def deeply_nested_eml():
    """Factory for messages with an arbitrary multipart nesting depth."""

    def _make(levels):
        return "From: deep@example.com\r\n" + nest_multipart(levels)

    return _make
