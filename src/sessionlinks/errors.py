"""Exception hierarchy for sessionlinks."""

from __future__ import annotations


class SessionLinksError(Exception):
    """Base class for every error raised by sessionlinks."""


class DecodeError(SessionLinksError):
    """The compressed container could not be decoded."""


class BadMagicError(DecodeError):
    """Input does not start with the container signature."""


class CorruptDataError(DecodeError):
    """Compressed block is truncated or references data that does not exist."""


class SizeLimitExceededError(DecodeError):
    """Decoded data would grow past the allowed expansion limit."""


class ParseError(SessionLinksError):
    """Decompressed data is not a usable session document."""


class MalformedSessionError(ParseError):
    """Structural violation: wrong JSON type, invalid JSON or invalid UTF-8."""


class MissingFieldError(ParseError):
    """A required field is absent."""

    def __init__(self, field: str, location: str) -> None:
        super().__init__(f"missing required field {field!r} in {location}")
        self.field = field
        self.location = location


class RenderError(SessionLinksError):
    """Links could not be rendered."""


class UnsupportedFormatError(RenderError):
    """The requested output format does not exist."""


class ConversionFailedError(RenderError):
    """Converting the intermediate markup into the target format failed."""


class ReadError(SessionLinksError):
    """The input file could not be read."""


class InputNotFoundError(ReadError):
    pass


class InputPermissionError(ReadError):
    pass


class WriteError(SessionLinksError):
    """Writing the output file failed."""


class OutputNotFoundError(WriteError):
    pass


class OutputExistsError(WriteError):
    """Target file exists and overwriting is disabled."""


class MissingParentError(WriteError):
    """Target directory is missing and folder creation is disabled."""


class OutputPermissionError(WriteError):
    pass
