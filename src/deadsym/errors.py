"""
Error taxonomy.

Every error below is fatal for a run: the CLI prints it and exits non-zero.
The only tolerated failure (an unreadable source file while looking up macro
ranges) never surfaces as an exception, see ``macro_spans``.
"""
from __future__ import annotations


class DeadsymError(Exception):
    """Base class for all fatal analysis errors."""


class IoError(DeadsymError):
    """A dump file, index or directory could not be accessed."""


class DecodeError(DeadsymError):
    """A JSON or protobuf payload is malformed."""


class SchemaError(DeadsymError):
    """A unit's dependency table is internally inconsistent."""


class ExternalToolError(DeadsymError):
    """The source indexing tool failed to start or exited non-zero."""
