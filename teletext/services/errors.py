"""
Service layer exceptions and the fetch error taxonomy.

Every failed fetch is described by a FetchError whose ``kind`` comes from a
closed set. ``classify`` turns raw transport/HTTP outcomes into FetchErrors.
"""

import asyncio
import json
import math
from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class ConfigError(ServiceError):
    """Source configuration is invalid."""

    pass


class ErrorKind(str, Enum):
    """Closed set of fetch failure kinds."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    NOT_FOUND = "not_found"
    SERVER = "server"
    PARSE = "parse"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.SERVER})


# Teletext-style user notices, one per kind
ERROR_MESSAGES: dict[ErrorKind, dict[str, str]] = {
    ErrorKind.NETWORK: {
        "title": "CONNECTION LOST",
        "message": "Please check your internet connection",
        "action": "RETRY",
    },
    ErrorKind.TIMEOUT: {
        "title": "SERVICE SLOW",
        "message": "The service is taking too long",
        "action": "RETRY",
    },
    ErrorKind.RATE_LIMIT: {
        "title": "SERVICE BUSY",
        "message": "Using cached data - please wait",
        "action": "WAIT",
    },
    ErrorKind.NOT_FOUND: {
        "title": "NOT FOUND",
        "message": "The requested data was not found",
        "action": "HOME",
    },
    ErrorKind.SERVER: {
        "title": "SERVICE ERROR",
        "message": "Something went wrong on the server",
        "action": "RETRY",
    },
    ErrorKind.PARSE: {
        "title": "DATA ERROR",
        "message": "Could not read the response data",
        "action": "RETRY",
    },
    ErrorKind.VALIDATION: {
        "title": "INVALID INPUT",
        "message": "Please check your entry",
        "action": "FIX",
    },
    ErrorKind.UNKNOWN: {
        "title": "ERROR",
        "message": "An unexpected error occurred",
        "action": "RETRY",
    },
}


class FetchError(ServiceError):
    """
    A classified fetch failure.

    ``retryable`` defaults from the kind but callers may override it.
    Instances are treated as immutable; use ``with_retryable`` for a copy.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: int | None = None,
        retryable: bool | None = None,
        service_id: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.http_status = http_status
        self.retryable = kind in RETRYABLE_KINDS if retryable is None else retryable
        super().__init__(message, service_id=service_id)

    @property
    def user_message(self) -> dict[str, str]:
        return ERROR_MESSAGES[self.kind]

    def with_retryable(self, retryable: bool) -> "FetchError":
        return FetchError(
            self.kind,
            self.message,
            http_status=self.http_status,
            retryable=retryable,
            service_id=self.service_id,
        )

    def __repr__(self) -> str:
        return (
            f"FetchError(kind={self.kind.value}, status={self.http_status}, "
            f"retryable={self.retryable}, message={self.message!r})"
        )


def kind_from_status(status: int) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if 400 <= status < 500:
        return ErrorKind.VALIDATION
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def classify(outcome: Any, service_id: str | None = None) -> FetchError:
    """
    Classify a raw outcome into a FetchError.

    Accepts an HTTP status code, an ``httpx.Response``, or an exception
    raised while performing the request or decoding its body. Has no side
    effects.
    """
    if isinstance(outcome, FetchError):
        return outcome

    if isinstance(outcome, httpx.Response):
        return FetchError(
            kind_from_status(outcome.status_code),
            f"HTTP {outcome.status_code}: {outcome.reason_phrase}",
            http_status=outcome.status_code,
            service_id=service_id,
        )

    if isinstance(outcome, int):
        return FetchError(
            kind_from_status(outcome),
            f"HTTP {outcome}",
            http_status=outcome,
            service_id=service_id,
        )

    if isinstance(outcome, httpx.HTTPStatusError):
        return classify(outcome.response, service_id=service_id)

    # Order matters: httpx timeouts are also transport errors
    if isinstance(outcome, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError)):
        return FetchError(
            ErrorKind.TIMEOUT,
            str(outcome) or "Request timed out",
            service_id=service_id,
        )

    if isinstance(outcome, (httpx.TransportError, ConnectionError, OSError)):
        return FetchError(
            ErrorKind.NETWORK,
            str(outcome) or "Network error",
            service_id=service_id,
        )

    if isinstance(outcome, (json.JSONDecodeError, ValidationError)):
        return FetchError(
            ErrorKind.PARSE,
            f"Failed to parse response: {outcome}",
            service_id=service_id,
        )

    # Unrecognised exceptions are retried, malformed data is not
    if isinstance(outcome, BaseException):
        return FetchError(
            ErrorKind.UNKNOWN,
            str(outcome) or type(outcome).__name__,
            retryable=True,
            service_id=service_id,
        )

    return FetchError(ErrorKind.UNKNOWN, "Request failed", service_id=service_id)


def rate_limit_notice(reset_in_seconds: float | None) -> str:
    """Human readable notice shown while serving cached data."""
    if not reset_in_seconds or reset_in_seconds <= 0:
        return "USING CACHED DATA"

    seconds = math.ceil(reset_in_seconds)
    if seconds < 60:
        return f"USING CACHED DATA - REFRESH IN {seconds}S"

    minutes = math.ceil(seconds / 60)
    return f"USING CACHED DATA - REFRESH IN {minutes}M"
