"""
Custom exceptions for the logship upload engine.

Provider failures are classified into an ErrorKind so the uploader can decide
between token refresh, plain retry, or benign-race absorption.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import LogEvent


class ErrorKind(str, Enum):
    STALE_TOKEN = "stale_token"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    OPERATION_IN_PROGRESS = "operation_in_progress"
    DATA_ALREADY_ACCEPTED = "data_already_accepted"
    THROTTLED = "throttled"
    OTHER = "other"


class LogShipError(Exception):
    """Base error for logship."""

    pass


class RemoteServiceError(LogShipError):
    """Classified failure returned by the remote log service."""

    def __init__(self, kind: ErrorKind, message: str = "", code: Optional[str] = None):
        super().__init__(message or kind.value)
        self.kind = kind
        self.code = code

    @property
    def refreshes_token(self) -> bool:
        """Stale or missing destination: re-fetch the token and resubmit once."""
        return self.kind in (ErrorKind.STALE_TOKEN, ErrorKind.NOT_FOUND)

    @property
    def is_benign_race(self) -> bool:
        """A concurrent creator already made the resource."""
        return self.kind in (ErrorKind.ALREADY_EXISTS, ErrorKind.OPERATION_IN_PROGRESS)

    def __repr__(self) -> str:
        return f"RemoteServiceError(kind={self.kind.value!r}, code={self.code!r}, message={str(self)!r})"


class MessageTruncated(LogShipError):
    """A message exceeded the single-event cap and was truncated in place."""

    def __init__(self, event: "LogEvent"):
        super().__init__("Message Truncated because it exceeds the CloudWatch size limit")
        self.event = event


class StreamNotFound(LogShipError):
    """The stream could not be located, even after creating it."""

    def __init__(self, group: str, stream: str):
        super().__init__(f"Stream not found: {group}:{stream}")
        self.group = group
        self.stream = stream


class FlushTimeout(LogShipError):
    """Events were still queued when the shutdown drain gave up."""

    def __init__(self, pending: int):
        super().__init__("Timeout reached while waiting for logs to submit")
        self.pending = pending


_CODE_KINDS = {
    "InvalidSequenceTokenException": ErrorKind.STALE_TOKEN,
    "ResourceNotFoundException": ErrorKind.NOT_FOUND,
    "ResourceAlreadyExistsException": ErrorKind.ALREADY_EXISTS,
    "OperationAbortedException": ErrorKind.OPERATION_IN_PROGRESS,
    "DataAlreadyAcceptedException": ErrorKind.DATA_ALREADY_ACCEPTED,
    "ThrottlingException": ErrorKind.THROTTLED,
    "LimitExceededException": ErrorKind.THROTTLED,
}


def map_client_error(e: Exception) -> RemoteServiceError:
    """Translate a provider exception (botocore ClientError) into a RemoteServiceError."""
    if isinstance(e, RemoteServiceError):
        return e

    from botocore.exceptions import ClientError

    if isinstance(e, ClientError):
        err = e.response.get("Error", {})
        code = err.get("Code")
        message = err.get("Message") or str(e)
        return RemoteServiceError(_CODE_KINDS.get(code, ErrorKind.OTHER), message, code=code)
    return RemoteServiceError(ErrorKind.OTHER, str(e), code=type(e).__name__)
