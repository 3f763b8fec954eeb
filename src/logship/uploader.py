"""
Upload coordinator: ships the head of a pending-event queue to one stream.

One call runs a single pass of the state machine:

    guard check -> mark in flight -> acquire token -> carve batch -> append
        -> (stale token | not found)  clear token, re-acquire, resubmit once
        -> (other failure)            resubmit the same request up to N times
    -> release guard -> report outcome

Events are removed from the caller's queue when the batch is carved, not when
the service confirms it: a batch whose append ultimately fails is dropped
(at-most-once delivery).
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from loguru import logger

from .client import LogsClient
from .errors import ErrorKind, LogShipError, RemoteServiceError, StreamNotFound
from .metrics import (
    APPEND_LATENCY_MS,
    APPENDS_TOTAL,
    EVENTS_UPLOADED_TOTAL,
    TOKEN_REFRESH_TOTAL,
    TRUNCATED_TOTAL,
    UPLOADS_TOTAL,
)
from .models import LogEvent, StreamKey, UploadResult, UploadStatus
from .provisioner import Provisioner
from .sizing import DEFAULT_LIMITS, SizeLimits, carve_batch
from .tokens import InFlightGuard, TokenStore, inflight_guard, token_store
from .utils import calculate_retry_delay

if TYPE_CHECKING:
    from .settings import UploaderSettings

DEFAULT_RETRY_ATTEMPTS = 3

CompletionCallback = Callable[[UploadResult], Any]


class Uploader:
    """Per-stream serialized uploader sharing token/in-flight state.

    By default the process-wide TokenStore and InFlightGuard are used so that
    every Uploader writing to a stream sees the same token. Pass explicit
    instances for isolation.

    Example:
        uploader = Uploader(BotoLogsClient.from_settings(get_settings()))
        result = await uploader.upload("app", "web-1", queue, retention_days=14)
        if not result.ok:
            logger.error(result.error)
    """

    def __init__(
        self,
        client: LogsClient,
        *,
        tokens: Optional[TokenStore] = None,
        guard: Optional[InFlightGuard] = None,
        provisioner: Optional[Provisioner] = None,
        limits: SizeLimits = DEFAULT_LIMITS,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_backoff_ms: int = 0,
    ):
        if retry_attempts < 0:
            raise ValueError("retry_attempts must be >= 0")
        self._client = client
        self._tokens = tokens if tokens is not None else token_store()
        self._guard = guard if guard is not None else inflight_guard()
        self._provisioner = provisioner or Provisioner(client)
        self._limits = limits
        self._retry_attempts = retry_attempts
        self._retry_backoff_ms = retry_backoff_ms

    @classmethod
    def from_settings(cls, client: LogsClient, settings: "UploaderSettings", **kwargs) -> "Uploader":
        limits = SizeLimits(
            max_event_bytes=settings.max_event_bytes,
            max_batch_bytes=settings.max_batch_bytes,
            event_overhead_bytes=settings.event_overhead_bytes,
        )
        return cls(
            client,
            limits=limits,
            retry_attempts=settings.retry_attempts,
            retry_backoff_ms=settings.retry_backoff_ms,
            **kwargs,
        )

    @property
    def provisioner(self) -> Provisioner:
        return self._provisioner

    @property
    def tokens(self) -> TokenStore:
        return self._tokens

    # --------------------------- public API

    async def upload(
        self,
        group: str,
        stream: str,
        queue: List[LogEvent],
        retention_days: int = 0,
        *,
        ensure_log_group: bool = True,
        on_complete: Optional[CompletionCallback] = None,
    ) -> UploadResult:
        """Send one legal batch from the head of `queue` (assumed time-sorted).

        Never raises for classified service errors; the outcome is returned
        (and passed to `on_complete`, which may be sync or async).
        """
        key = StreamKey(group, stream)
        if not queue or not self._guard.try_acquire(key):
            # A concurrent append would be rejected with a stale token.
            logger.debug(f"nothing to do or already doing something: {key}")
            result = UploadResult.skipped()
        else:
            try:
                result = await self._upload_in_flight(key, queue, retention_days, ensure_log_group)
            finally:
                self._guard.release(key)

        UPLOADS_TOTAL.labels(status=result.status.value).inc()
        if on_complete is not None:
            ret = on_complete(result)
            if inspect.isawaitable(ret):
                await ret
        return result

    async def acquire_token(
        self, key: StreamKey, retention_days: int = 0, ensure_log_group: bool = True
    ) -> Optional[str]:
        """Cached token if any, otherwise the stream's current token from the service.

        A cached token means the group and stream are assumed to exist; the
        provisioner is not consulted.
        """
        cached = self._tokens.get(key)
        if cached is not None:
            logger.debug(f"using existing next token and assuming exists: {key}")
            return cached

        if ensure_log_group:
            await self._provisioner.ensure_group_present(key.group, retention_days)
            stream = await self._provisioner.ensure_stream_present(key.group, key.stream)
        else:
            stream = await self._provisioner.find_stream(key.group, key.stream)
            if stream is None:
                raise StreamNotFound(key.group, key.stream)

        logger.debug(f"token found for {key}: {stream.upload_sequence_token}")
        return stream.upload_sequence_token

    def clear_token(self, group: str, stream: str) -> None:
        """Forget the cached token, e.g. when done writing to a stream."""
        self._tokens.clear(StreamKey(group, stream))

    # --------------------------- internals

    async def _upload_in_flight(
        self,
        key: StreamKey,
        queue: List[LogEvent],
        retention_days: int,
        ensure_log_group: bool,
    ) -> UploadResult:
        try:
            token = await self.acquire_token(key, retention_days, ensure_log_group)
        except LogShipError as exc:
            logger.warning(f"error getting token for {key}: {exc!r}")
            return UploadResult(status=UploadStatus.FAILED, error=exc)

        selection = carve_batch(queue, self._limits)
        if selection.error is not None:
            TRUNCATED_TOTAL.inc()
            logger.warning(f"{selection.error} ({key}, timestamp={selection.truncated.timestamp})")
            return UploadResult(
                status=UploadStatus.TRUNCATED,
                error=selection.error,
                truncated=selection.truncated,
            )

        batch = selection.events
        if not batch:
            # queue drained by another caller while the token was fetched
            logger.debug(f"queue emptied before submit: {key}")
            return UploadResult.skipped()

        logger.debug(f"send {len(batch)} events ({selection.nbytes} bytes) to {key}")
        try:
            await self._submit(key, batch, token)
        except RemoteServiceError as exc:
            if exc.refreshes_token:
                logger.warning(f"{exc.code or exc.kind.value}, retrying with a fresh token: {key}")
                return await self._submit_with_another_token(
                    key, batch, retention_days, ensure_log_group
                )
            logger.warning(f"error during append to {key}: {exc!r}")
            return await self._retry_submit(key, batch, token, exc)

        return self._sent(batch, attempts=1)

    async def _submit_with_another_token(
        self,
        key: StreamKey,
        batch: List[LogEvent],
        retention_days: int,
        ensure_log_group: bool,
    ) -> UploadResult:
        TOKEN_REFRESH_TOTAL.inc()
        self._tokens.clear(key)
        try:
            token = await self.acquire_token(key, retention_days, ensure_log_group)
        except LogShipError as exc:
            logger.error(f"could not refresh token for {key}, dropping {len(batch)} events: {exc!r}")
            return UploadResult(status=UploadStatus.FAILED, attempts=1, error=exc)

        try:
            await self._submit(key, batch, token)
        except RemoteServiceError as exc:
            logger.error(f"resubmit with fresh token failed for {key}: {exc!r}")
            return UploadResult(status=UploadStatus.FAILED, attempts=2, error=exc)
        return self._sent(batch, attempts=2)

    async def _retry_submit(
        self,
        key: StreamKey,
        batch: List[LogEvent],
        token: Optional[str],
        error: RemoteServiceError,
    ) -> UploadResult:
        attempts = 1
        for retry in range(self._retry_attempts):
            logger.debug(f"retrying to upload, {self._retry_attempts - retry} more times")
            delay = calculate_retry_delay(retry, base_delay_ms=self._retry_backoff_ms)
            if delay:
                await asyncio.sleep(delay)
            attempts += 1
            try:
                await self._submit(key, batch, token)
            except RemoteServiceError as exc:
                error = exc
                continue
            return self._sent(batch, attempts=attempts)

        logger.error(f"giving up on {key} after {attempts} attempts, dropping {len(batch)} events")
        return UploadResult(status=UploadStatus.FAILED, attempts=attempts, error=error)

    async def _submit(self, key: StreamKey, batch: List[LogEvent], token: Optional[str]) -> None:
        """One append request; caches the returned token on success."""
        t0 = time.perf_counter()
        try:
            result = await self._client.append_events(key.group, key.stream, batch, token)
        except RemoteServiceError as exc:
            if exc.kind == ErrorKind.DATA_ALREADY_ACCEPTED:
                # an earlier attempt landed; our token is now stale
                logger.debug(f"batch already accepted for {key}")
                APPENDS_TOTAL.labels(outcome="ok").inc()
                self._tokens.clear(key)
                return
            APPENDS_TOTAL.labels(outcome=exc.kind.value).inc()
            raise
        finally:
            APPEND_LATENCY_MS.observe((time.perf_counter() - t0) * 1000.0)

        APPENDS_TOTAL.labels(outcome="ok").inc()
        if result is not None and result.next_token:
            self._tokens.set(key, result.next_token)

    def _sent(self, batch: List[LogEvent], attempts: int) -> UploadResult:
        EVENTS_UPLOADED_TOTAL.inc(len(batch))
        return UploadResult(status=UploadStatus.SENT, sent=len(batch), attempts=attempts)


# --------------------------- module-level API on the shared stores


async def upload(
    client: LogsClient,
    group: str,
    stream: str,
    queue: List[LogEvent],
    retention_days: int = 0,
    *,
    ensure_log_group: bool = True,
    on_complete: Optional[CompletionCallback] = None,
) -> UploadResult:
    """Upload with the process-wide token store and in-flight guard."""
    return await Uploader(client).upload(
        group,
        stream,
        queue,
        retention_days,
        ensure_log_group=ensure_log_group,
        on_complete=on_complete,
    )


def clear_token(group: str, stream: str) -> None:
    """Invalidate the process-wide cached token for (group, stream)."""
    token_store().clear(StreamKey(group, stream))
