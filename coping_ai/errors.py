"""Failure taxonomy shared by every provider adapter and the HTTP boundary.

Each error carries a stable ``kind``, the HTTP status the boundary should use and a
message that is safe to show to the user. Raw provider bodies never end up in
``message``; adapters log them instead.
"""
from __future__ import annotations
from typing import Literal, Optional

ErrorKind = Literal[
    "invalid_request",
    "missing_credential",
    "invalid_credential",
    "rate_limited",
    "transport_unavailable",
    "provider_http_error",
    "malformed_response",
    "response_format",
]


class ProviderError(Exception):
    kind: ErrorKind = "provider_http_error"
    status_code: int = 503
    default_message = "AI service temporarily unavailable. Please try again later."

    def __init__(self, message: Optional[str] = None, provider: Optional[str] = None) -> None:
        self.provider = provider
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.kind}


class InvalidRequest(ProviderError):
    kind = "invalid_request"
    status_code = 400
    default_message = "Invalid request."


class MissingCredential(ProviderError):
    kind = "missing_credential"
    status_code = 401

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"An API key is required to use {provider}.", provider)


class InvalidCredential(ProviderError):
    kind = "invalid_credential"
    status_code = 401

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Invalid {provider} API key. Please check your API key and try again.", provider)


class RateLimited(ProviderError):
    kind = "rate_limited"
    status_code = 429

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{provider} rate limit exceeded. Please try again in a moment.", provider)


class TransportUnavailable(ProviderError):
    kind = "transport_unavailable"
    status_code = 503

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Cannot connect to {provider}. Please check your connection and try again.", provider)


class ProviderHTTPError(ProviderError):
    kind = "provider_http_error"
    status_code = 503

    def __init__(self, provider: str, upstream_status: int, message: Optional[str] = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(message, provider)


class MalformedProviderResponse(ProviderError):
    kind = "malformed_response"
    status_code = 500

    def __init__(self, provider: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unexpected response format from {provider}.", provider)


class AIResponseFormatError(ProviderError):
    kind = "response_format"
    status_code = 500
    default_message = "The AI model returned a response that could not be understood. Please try again."


def classify_http_status(provider: str, status: int) -> ProviderError:
    if status in (401, 403):
        return InvalidCredential(provider)
    if status == 429:
        return RateLimited(provider)
    return ProviderHTTPError(provider, status)
