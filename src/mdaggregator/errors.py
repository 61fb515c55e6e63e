from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    PROVIDER_REQUEST_FAILED = "PROVIDER_REQUEST_FAILED"
    PROVIDER_BAD_RESPONSE = "PROVIDER_BAD_RESPONSE"
    RENDER_FAILED = "RENDER_FAILED"
    RENEWAL_FAILED = "RENEWAL_FAILED"


class AggregatorError(Exception):
    """Base class for the expected failure conditions of the aggregator.

    Providers raise it from listing calls, the renderer from template
    failures. The renewal cycle and the retrieval path decide whether a
    given error is fatal, reported, or simply a miss.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable


class ProviderError(AggregatorError):
    """A provider could not list its tree or returned an unusable payload."""

    def __init__(self, source_name: str, code: ErrorCode, message: str) -> None:
        super().__init__(code, message, recoverable=True)
        self.source_name = source_name


class RenderError(AggregatorError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.RENDER_FAILED, message, recoverable=True)


class RenewalError(AggregatorError):
    """Raised by a strict renewal; the service must not become ready."""

    def __init__(self, message: str, failed_sources: tuple[str, ...] = ()) -> None:
        super().__init__(ErrorCode.RENEWAL_FAILED, message, recoverable=False)
        self.failed_sources = failed_sources
