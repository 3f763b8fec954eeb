"""
Fixtures for upload engine unit tests.

FakeLogsClient is an in-memory stand-in for the remote log service that
enforces the continuation-token protocol the way CloudWatch Logs does.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from logship import (
    AppendResult,
    ErrorKind,
    InFlightGuard,
    LogEvent,
    LogStream,
    RemoteServiceError,
    TokenStore,
    Uploader,
)


class FakeLogsClient:
    """Records every call; scripted errors are raised before normal handling."""

    def __init__(self) -> None:
        self.groups: Dict[str, Dict[str, Optional[str]]] = {}
        self.stored: Dict[tuple, List[LogEvent]] = {}
        self.calls: List[tuple] = []
        self.append_errors: List[Exception] = []
        self.describe_errors: List[Exception] = []
        self.create_group_errors: List[Exception] = []
        self.create_stream_errors: List[Exception] = []
        self.retention_error: Optional[Exception] = None
        self.retention: Dict[str, int] = {}
        self.append_gate: Optional[asyncio.Event] = None
        self._seq = 0

    # --- helpers for tests

    def add_stream(self, group: str, stream: str, token: Optional[str] = None) -> None:
        self.groups.setdefault(group, {})[stream] = token

    def count(self, op: str) -> int:
        return sum(1 for c in self.calls if c[0] == op)

    def appended(self, group: str, stream: str) -> List[LogEvent]:
        return self.stored.get((group, stream), [])

    # --- LogsClient

    async def append_events(self, group, stream, events, token=None) -> AppendResult:
        self.calls.append(("append_events", group, stream, len(events), token))
        if self.append_gate is not None:
            await self.append_gate.wait()
        if self.append_errors:
            raise self.append_errors.pop(0)
        if group not in self.groups or stream not in self.groups[group]:
            raise RemoteServiceError(ErrorKind.NOT_FOUND, "stream does not exist")
        if self.groups[group][stream] != token:
            raise RemoteServiceError(
                ErrorKind.STALE_TOKEN, "invalid sequence token", code="InvalidSequenceTokenException"
            )
        self._seq += 1
        nxt = f"token-{self._seq}"
        self.groups[group][stream] = nxt
        self.stored.setdefault((group, stream), []).extend(LogEvent(**e.model_dump()) for e in events)
        return AppendResult(next_token=nxt)

    async def describe_streams(self, group, prefix=None, limit=None) -> List[LogStream]:
        self.calls.append(("describe_streams", group, prefix, limit))
        if self.describe_errors:
            raise self.describe_errors.pop(0)
        if group not in self.groups:
            raise RemoteServiceError(ErrorKind.NOT_FOUND, "group does not exist")
        out = [
            LogStream(name=name, upload_sequence_token=tok)
            for name, tok in sorted(self.groups[group].items())
            if prefix is None or name.startswith(prefix)
        ]
        return out[:limit] if limit else out

    async def create_group(self, group) -> None:
        self.calls.append(("create_group", group))
        if self.create_group_errors:
            raise self.create_group_errors.pop(0)
        if group in self.groups:
            raise RemoteServiceError(ErrorKind.ALREADY_EXISTS, "group exists")
        self.groups[group] = {}

    async def create_stream(self, group, stream) -> None:
        self.calls.append(("create_stream", group, stream))
        if self.create_stream_errors:
            raise self.create_stream_errors.pop(0)
        if group not in self.groups:
            raise RemoteServiceError(ErrorKind.NOT_FOUND, "group does not exist")
        if stream in self.groups[group]:
            raise RemoteServiceError(ErrorKind.ALREADY_EXISTS, "stream exists")
        self.groups[group][stream] = None

    async def put_retention_policy(self, group, days) -> None:
        self.calls.append(("put_retention_policy", group, days))
        if self.retention_error is not None:
            raise self.retention_error
        self.retention[group] = days


def make_events(n: int, size: int = 10, start: int = 1_700_000_000_000) -> List[LogEvent]:
    return [LogEvent(message="x" * size, timestamp=start + i) for i in range(n)]


@pytest.fixture
def fake_client():
    return FakeLogsClient()


@pytest.fixture
def tokens():
    return TokenStore()


@pytest.fixture
def guard():
    return InFlightGuard()


@pytest.fixture
def uploader(fake_client, tokens, guard):
    """Uploader with isolated token store and guard."""
    return Uploader(fake_client, tokens=tokens, guard=guard)


@pytest.fixture
def events_factory():
    return make_events
