"""
Typed errors for plugin discovery.

Every failure carries an ErrorCode for programmatic handling plus the
repository path it relates to, so callers can report "which file, which
line" without parsing messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    # Reference / file syntax errors
    EMPTY_INPUT = "empty_input"
    INVALID_FORMAT = "invalid_format"
    MALFORMED_JSON = "malformed_json"
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    INVALID_ENCODING = "invalid_encoding"
    UNTERMINATED_FRONTMATTER = "unterminated_frontmatter"
    MALFORMED_FRONTMATTER_LINE = "malformed_frontmatter_line"

    # Fetch errors
    NOT_FOUND = "not_found"
    TRANSPORT_FAILURE = "transport_failure"
    CORRUPT_ARCHIVE = "corrupt_archive"

    # Discovery errors
    NO_MANIFEST_FOUND = "no_manifest_found"


class PluginScopeError(Exception):
    """Base class for all pluginscope errors."""

    code: ErrorCode = ErrorCode.INVALID_FORMAT

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reporting."""
        return {
            "code": self.code.value,
            "message": self.message,
            "path": self.path,
        }


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(PluginScopeError):
    """A reference string, manifest or descriptor could not be parsed."""


class EmptyInputError(ParseError):
    code = ErrorCode.EMPTY_INPUT


class InvalidFormatError(ParseError):
    code = ErrorCode.INVALID_FORMAT


class MalformedJsonError(ParseError):
    code = ErrorCode.MALFORMED_JSON


class InvalidEncodingError(ParseError):
    code = ErrorCode.INVALID_ENCODING


class MissingFieldError(ParseError):
    """A required field is absent or not of the expected type."""

    code = ErrorCode.MISSING_FIELD

    def __init__(self, field: str, path: Optional[str] = None):
        self.field = field
        super().__init__(f"missing or invalid required field '{field}'", path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InvalidFieldError(ParseError):
    """A structural field is present but has the wrong shape."""

    code = ErrorCode.INVALID_FIELD

    def __init__(self, field: str, reason: str, path: Optional[str] = None):
        self.field = field
        super().__init__(f"invalid field '{field}': {reason}", path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class UnterminatedFrontmatterError(ParseError):
    code = ErrorCode.UNTERMINATED_FRONTMATTER

    def __init__(self, path: Optional[str] = None):
        super().__init__("frontmatter opened with '---' but never closed", path)


class MalformedFrontmatterLineError(ParseError):
    code = ErrorCode.MALFORMED_FRONTMATTER_LINE

    def __init__(self, line_number: int, path: Optional[str] = None):
        self.line_number = line_number
        super().__init__(f"line {line_number}: expected 'key: value'", path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["line_number"] = self.line_number
        return data


# ---------------------------------------------------------------------------
# Fetch errors
# ---------------------------------------------------------------------------


class FetchError(PluginScopeError):
    """Retrieving or unpacking a repository snapshot failed."""


class NotFoundError(FetchError):
    code = ErrorCode.NOT_FOUND


class TransportFailureError(FetchError):
    code = ErrorCode.TRANSPORT_FAILURE


class CorruptArchiveError(FetchError):
    code = ErrorCode.CORRUPT_ARCHIVE


# ---------------------------------------------------------------------------
# Discovery errors
# ---------------------------------------------------------------------------


class DiscoveryError(PluginScopeError):
    """Discovery over a fetched tree cannot produce any result."""


class NoManifestFoundError(DiscoveryError):
    code = ErrorCode.NO_MANIFEST_FOUND
