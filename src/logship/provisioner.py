"""
Destination provisioning: make sure the log group and stream exist.

Creation races with other writers are expected and absorbed. Retention policy
updates are best-effort background tasks whose failures are only logged.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Set

from loguru import logger

from .client import LogsClient
from .errors import ErrorKind, RemoteServiceError, StreamNotFound
from .metrics import RETENTION_FAILURES_TOTAL
from .models import LogStream

# describe attempts after creating a stream before giving up
STREAM_LOOKUP_ATTEMPTS = 3


class Provisioner:
    """Ensures group/stream presence against a LogsClient.

    Example:
        prov = Provisioner(client)
        if await prov.ensure_group_present("app", retention_days=14):
            stream = await prov.ensure_stream_present("app", "web-1")
            token = stream.upload_sequence_token
    """

    def __init__(self, client: LogsClient):
        self._client = client
        self._pending: Set[asyncio.Task] = set()

    async def ensure_group_present(self, group: str, retention_days: int = 0) -> bool:
        """Confirm (or create) the group; returns True when it is present.

        Raises:
            RemoteServiceError: describe failed for a reason other than
                not-found, or creation failed for a reason other than a race.
        """
        logger.debug(f"ensure group present: {group}")
        try:
            await self._client.describe_streams(group, limit=1)
        except RemoteServiceError as exc:
            if exc.kind != ErrorKind.NOT_FOUND:
                raise
            logger.debug(f"create group: {group}")
            await self._create_ignoring_race(self._client.create_group(group), group)

        self.put_retention_policy(group, retention_days)
        return True

    async def find_stream(self, group: str, stream: str) -> Optional[LogStream]:
        """Describe by name prefix and return the exact-name match, if any."""
        for s in await self._client.describe_streams(group, prefix=stream):
            if s.name == stream:
                return s
        return None

    async def ensure_stream_present(self, group: str, stream: str) -> LogStream:
        """Locate the exact-name stream, creating it if absent."""
        created = False
        for _ in range(STREAM_LOOKUP_ATTEMPTS):
            found = await self.find_stream(group, stream)
            if found is not None:
                logger.debug(f"stream found: {group}:{stream}")
                return found
            if not created:
                logger.debug(f"create stream: {group}:{stream}")
                await self._create_ignoring_race(
                    self._client.create_stream(group, stream), f"{group}:{stream}"
                )
                created = True
        raise StreamNotFound(group, stream)

    async def _create_ignoring_race(self, create, what: str) -> None:
        try:
            await create
        except RemoteServiceError as exc:
            if not exc.is_benign_race:
                raise
            logger.debug(f"ignore {exc.kind.value} while creating {what}: {exc}")

    # ---------- retention (best-effort) ----------

    def put_retention_policy(self, group: str, days: int) -> None:
        """Schedule a retention update; days <= 0 leaves the service default."""
        if days <= 0:
            return
        logger.debug(f'setting retention policy for "{group}" to {days} days')
        task = asyncio.get_running_loop().create_task(self._put_retention(group, days))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _put_retention(self, group: str, days: int) -> None:
        try:
            await self._client.put_retention_policy(group, days)
        except Exception as exc:
            RETENTION_FAILURES_TOTAL.inc()
            logger.error(
                f"failed to set retention policy for {group} to {days} days due to "
                f"{type(exc).__name__}: {exc}"
            )

    async def wait_pending(self) -> None:
        """Await outstanding retention updates (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending_count(self) -> int:
        return len(self._pending)
