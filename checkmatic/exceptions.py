"""Custom exceptions for the CheckMatic application."""

from enum import Enum

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing your request."


class ErrorKind(str, Enum):
    """Machine-readable error categories returned to API clients."""

    MISSING_INPUT = "MissingInput"
    INVALID_FORMAT = "InvalidFormat"
    DISALLOWED_SCHEME = "DisallowedScheme"
    TOO_LONG = "TooLong"
    SUSPICIOUS_PATTERN = "SuspiciousPattern"
    PRIVATE_NETWORK_ACCESS = "PrivateNetworkAccess"
    TOO_LARGE = "TooLarge"
    POTENTIAL_INJECTION = "PotentialInjection"
    UNSUPPORTED_FILE_TYPE = "UnsupportedFileType"
    INVALID_SIZE = "InvalidSize"
    CORRUPTED_DATA = "CorruptedData"
    INVALID_INPUT = "InvalidInput"
    NO_CONTENT = "NoContent"
    TRANSCRIPTION_FAILED = "TranscriptionFailed"
    FETCH_FAILED = "FetchFailed"
    PARTIAL_MODEL_FAILURE = "PartialModelFailure"
    SYNTHESIS_UNAVAILABLE = "SynthesisUnavailable"
    UNKNOWN_MODE = "UnknownMode"
    RATE_LIMITED = "RateLimited"
    INTERNAL_ERROR = "InternalError"


class CheckmaticError(Exception):
    """Base exception for CheckMatic.

    ``message`` is safe to show to API clients only when ``status_code`` is
    below 500; server errors are rendered with a generic message.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, kind: ErrorKind | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class InputValidationError(CheckmaticError):
    """Raised when user input breaks a validation rule."""

    status_code = 400

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message, kind)


class FetchFailedError(CheckmaticError):
    """Raised when a submitted page cannot be downloaded."""

    kind = ErrorKind.FETCH_FAILED
    status_code = 400

    def __init__(self, upstream_status: int | None = None, message: str | None = None):
        self.upstream_status = upstream_status
        if message is None:
            if upstream_status is not None:
                message = f"Failed to fetch content: request failed with error code {upstream_status}"
            else:
                message = "Failed to fetch content from the provided URL"
        super().__init__(message)


class TranscriptionError(CheckmaticError):
    """Raised when text cannot be read from an uploaded image."""

    kind = ErrorKind.TRANSCRIPTION_FAILED
    status_code = 400

    def __init__(self, message: str = "Failed to extract text from image."):
        super().__init__(message)


class RateLimitedError(CheckmaticError):
    """Raised when a client exceeds the request budget."""

    kind = ErrorKind.RATE_LIMITED
    status_code = 429

    def __init__(self, message: str = "Too many requests. Please try again later."):
        super().__init__(message)


class UpstreamAPIError(CheckmaticError):
    """Exception raised when an external service returns a non-2xx status."""

    def __init__(self, status_code: int | None, message: str, response_text: str = ""):
        self.upstream_status = status_code
        self.response_text = response_text
        super().__init__(f"API error {status_code}: {message}")


class NetworkError(CheckmaticError):
    """Exception raised for network/connection errors."""


class ConfigurationError(CheckmaticError):
    """Exception raised for configuration errors."""


class InternalError(CheckmaticError):
    """Unanticipated failure; always rendered as the generic message."""
