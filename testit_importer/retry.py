"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Retry handling for outbound calls.

Failures are first classified into an ErrorKind. The Test IT client tags its
own errors, ``httpx`` transport errors are network failures by definition,
and everything else goes through a table of message markers. Only transient
kinds are retried.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from testit_importer.exceptions import ErrorKind, TmsApiError

logger = logging.getLogger("testit_importer.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 8
DEFAULT_RETRY_DELAY = 2.0

# Substrings seen in messages of transient failures, with the kind they signal
TRANSIENT_ERROR_MARKERS: dict[str, ErrorKind] = {
    "ConnectError": ErrorKind.TRANSIENT_NETWORK,
    "ConnectionResetError": ErrorKind.TRANSIENT_NETWORK,
    "Connection reset": ErrorKind.TRANSIENT_NETWORK,
    "connection was reset": ErrorKind.TRANSIENT_NETWORK,
    "An error occurred while sending": ErrorKind.TRANSIENT_NETWORK,
    "An error occured while sending": ErrorKind.TRANSIENT_NETWORK,
    "Server disconnected": ErrorKind.TRANSIENT_NETWORK,
    "RemoteProtocolError": ErrorKind.TRANSIENT_NETWORK,
    "peer closed connection": ErrorKind.TRANSIENT_NETWORK,
    "The response ended": ErrorKind.TRANSIENT_NETWORK,
    "ResponseEnded": ErrorKind.TRANSIENT_NETWORK,
    "IncompleteRead": ErrorKind.TRANSIENT_NETWORK,
    "InternalServerError": ErrorKind.TRANSIENT_SERVER,
    "Internal Server Error": ErrorKind.TRANSIENT_SERVER,
    "Bad Gateway": ErrorKind.TRANSIENT_SERVER,
    "Gateway Timeout": ErrorKind.TRANSIENT_SERVER,
    "Service Unavailable": ErrorKind.TRANSIENT_SERVER,
    "Error while checking a license": ErrorKind.TRANSIENT_SERVER,
    "LicenseCheckFailedException": ErrorKind.TRANSIENT_SERVER,
    "InfluxClientException": ErrorKind.TRANSIENT_SERVER,
}


def _marker_kind(error: BaseException) -> ErrorKind | None:
    text = f"{type(error).__name__}: {error}"
    for marker, kind in TRANSIENT_ERROR_MARKERS.items():
        if marker in text:
            return kind
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify a failed call.

    The error itself is checked first, then the error it wraps. A client
    error tagged FATAL can still turn out transient when its wrapped cause
    or message carries a marker.
    """
    if isinstance(error, TmsApiError) and error.kind.is_transient:
        return error.kind
    if isinstance(error, httpx.TransportError):
        return ErrorKind.TRANSIENT_NETWORK

    kind = _marker_kind(error)
    if kind is not None:
        return kind

    cause = error.__cause__ or error.__context__
    if cause is not None:
        if isinstance(cause, httpx.TransportError):
            return ErrorKind.TRANSIENT_NETWORK
        kind = _marker_kind(cause)
        if kind is not None:
            return kind

    return ErrorKind.FATAL


class RetryPolicy:
    """
    Fixed-delay retry policy for transient errors.

    Args:
        max_attempts: Total number of attempts, including the first one
        retry_delay: Pause between attempts in seconds
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        """Whether a failure on ``attempt`` (1-based) may be retried."""
        return attempt < self.max_attempts and classify_error(error).is_transient


DEFAULT_RETRY_POLICY = RetryPolicy()


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    description: str = "request",
) -> T:
    """
    Run ``operation`` and retry it while it fails with a transient error.

    Fatal errors propagate at once. When the attempts run out, the last
    error propagates unmodified.

    Args:
        operation: Zero-argument coroutine function to call
        policy: Retry policy, the default allows 8 attempts 2 seconds apart
        description: What the operation does, for log messages

    Returns:
        The operation's result
    """
    policy = policy or DEFAULT_RETRY_POLICY
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            kind = classify_error(e)
            if not kind.is_transient:
                raise

            logger.warning(
                f"Could not perform {description} on attempt {attempt}/{policy.max_attempts} "
                f"({kind.value}): {e}"
            )
            if not policy.should_retry(attempt, e):
                logger.error(f"Giving up on {description} after {attempt} attempts")
                raise

            await asyncio.sleep(policy.retry_delay)
