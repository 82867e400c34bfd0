"""Custom exceptions for text generation clients."""
from typing import Optional


class GenerationClientError(Exception):
    """Base exception for all generation client errors."""
    pass


class GenerationPayloadTooLargeError(GenerationClientError):
    """Raised when the transport rejects the request body as too large (HTTP 413)."""

    def __init__(self, message: str, payload_chars: Optional[int] = None):
        """
        Initialize payload error.

        Args:
            message: Error message
            payload_chars: Size of the rejected instruction + context, in characters
        """
        super().__init__(message)
        self.payload_chars = payload_chars


class GenerationRateLimitError(GenerationClientError):
    """Raised when the generation service rate limit is exceeded (HTTP 429)."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class GenerationAPIError(GenerationClientError):
    """Raised for generation API errors (4xx/5xx excluding 413 and 429)."""

    def __init__(self, message: str, status_code: int, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GenerationTimeoutError(GenerationClientError):
    """Raised when a generation request times out."""
    pass
