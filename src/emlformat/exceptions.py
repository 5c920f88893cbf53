"""
Exceptions raised by the EML parser, reader and composer.
"""


class EmlFormatError(Exception):
    """Base exception for errors during EML parsing or composition."""


class ArgumentError(EmlFormatError):
    """Raised when a public operation receives unusable input."""


class StructuralError(EmlFormatError):
    """Raised when the MIME structure of a message cannot be walked."""


class DecodeError(EmlFormatError):
    """Raised when a payload cannot be converted from its declared charset."""
