"""
Data models for the logship upload engine.

LogEvent is deliberately mutable: oversized messages are truncated in place
on the caller's queued object.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class LogEvent(BaseModel):
    """A single formatted log line destined for a stream."""

    message: str
    timestamp: int  # epoch millis

    @field_validator("timestamp")
    @classmethod
    def _non_negative(cls, v):
        if v < 0:
            raise ValueError("timestamp must be epoch millis >= 0")
        return v

    def to_wire(self) -> dict:
        return {"message": self.message, "timestamp": self.timestamp}


@dataclass(frozen=True)
class StreamKey:
    """Composite (group, stream) key for cached tokens and the in-flight guard."""

    group: str
    stream: str

    def __str__(self) -> str:
        return f"{self.group}:{self.stream}"


@dataclass(frozen=True)
class LogStream:
    name: str
    upload_sequence_token: Optional[str] = None


@dataclass(frozen=True)
class AppendResult:
    next_token: Optional[str] = None


class UploadStatus(str, Enum):
    SENT = "sent"  # batch accepted by the service
    SKIPPED = "skipped"  # in flight elsewhere, or nothing to send
    TRUNCATED = "truncated"  # oversized message cut, nothing sent
    FAILED = "failed"  # token acquisition or append ultimately failed


@dataclass(frozen=True)
class UploadResult:
    """Terminal outcome of one upload attempt.

    Attributes:
        status: What happened (see UploadStatus)
        sent: Number of events accepted by the service
        attempts: Number of append requests issued
        error: Final error for TRUNCATED / FAILED outcomes
        truncated: The queued event whose message was cut in place, if any
    """

    status: UploadStatus
    sent: int = 0
    attempts: int = 0
    error: Optional[Exception] = None
    truncated: Optional[LogEvent] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    @classmethod
    def skipped(cls) -> "UploadResult":
        return cls(status=UploadStatus.SKIPPED)
