from __future__ import annotations


class GPXError(Exception):
    pass


class GPXReadError(GPXError):
    """The GPX source could not be opened or read."""


class GPXDecodeError(GPXError):
    """The GPX source is not well-formed XML or does not map onto the document model."""


class GPXEncodeError(GPXError):
    """The document holds a value that cannot be written as XML 1.0."""
