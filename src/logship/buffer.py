from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional

from loguru import logger

from .client import LogsClient
from .errors import FlushTimeout
from .models import LogEvent, UploadResult, UploadStatus
from .uploader import Uploader
from .utils import NameOrProvider, now_millis, resolve_name

ErrorHandler = Callable[[Exception], Any]

DEFAULT_FLUSH_TIMEOUT_S = 10.0
DRAIN_POLL_INTERVAL_S = 0.01


def _log_error(err: Exception) -> None:
    logger.opt(exception=err).error(f"log upload failed: {err}")


class LogStreamBuffer:
    """
    Pending-event queue for one destination stream.

    Group and stream names may be zero-argument callables; they are resolved on
    every flush. Scheduling flushes (timers, shutdown hooks) is up to the caller.

    Usage:
        buf = LogStreamBuffer(client, "app", lambda: f"web-{hostname()}", retention_days=14)
        buf.add("service started")
        await buf.flush()      # one batch
        await buf.close()      # drain (waiting out a concurrent flush), then forget the token
    """

    def __init__(
        self,
        client: LogsClient,
        group: NameOrProvider,
        stream: NameOrProvider,
        *,
        retention_days: int = 0,
        ensure_log_group: bool = True,
        error_handler: Optional[ErrorHandler] = None,
        uploader: Optional[Uploader] = None,
        flush_timeout: float = DEFAULT_FLUSH_TIMEOUT_S,
    ):
        if not group:
            raise ValueError("group is required")
        if not stream:
            raise ValueError("stream is required")
        if retention_days < 0:
            raise ValueError("retention_days must be >= 0")
        if flush_timeout < 0:
            raise ValueError("flush_timeout must be >= 0")
        self._group = group
        self._stream = stream
        self._retention_days = retention_days
        self._ensure_log_group = ensure_log_group
        self._error_handler = error_handler or _log_error
        self._uploader = uploader or Uploader(client)
        self._flush_timeout = flush_timeout
        self.events: List[LogEvent] = []

    def __len__(self) -> int:
        return len(self.events)

    def add(self, message: str, timestamp: Optional[int] = None) -> bool:
        """Queue a message; empty messages are ignored. Returns True if queued."""
        if not message:
            return False
        ts = timestamp if timestamp is not None else now_millis()
        self.events.append(LogEvent(message=message, timestamp=ts))
        return True

    async def flush(self) -> UploadResult:
        """Upload one batch from the head of the queue."""
        if not self.events:
            return UploadResult.skipped()
        try:
            group = resolve_name(self._group)
            stream = resolve_name(self._stream)
        except Exception as exc:
            await self._handle(exc)
            return UploadResult(status=UploadStatus.FAILED, error=exc)

        self.events.sort(key=lambda ev: ev.timestamp)
        result = await self._uploader.upload(
            group,
            stream,
            self.events,
            self._retention_days,
            ensure_log_group=self._ensure_log_group,
        )
        if result.error is not None:
            await self._handle(result.error)
        return result

    async def close(self, timeout: Optional[float] = None) -> Optional[Exception]:
        """Flush until empty (or an attempt fails), then clear the stream's token.

        While another upload holds the stream, close() waits for it and tries
        again, giving up after `timeout` seconds (default: the buffer's
        flush_timeout) with FlushTimeout. Returns the first error encountered.
        """
        timeout = self._flush_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        error: Optional[Exception] = None
        while self.events:
            result = await self.flush()
            if result.error is not None:
                error = result.error
                break
            if result.status == UploadStatus.SKIPPED and self.events:
                if loop.time() >= deadline:
                    error = FlushTimeout(len(self.events))
                    await self._handle(error)
                    break
                await asyncio.sleep(DRAIN_POLL_INTERVAL_S)
        try:
            self._uploader.clear_token(resolve_name(self._group), resolve_name(self._stream))
        except Exception as exc:
            error = error or exc
        return error

    async def _handle(self, err: Exception) -> None:
        ret = self._error_handler(err)
        if inspect.isawaitable(ret):
            await ret
