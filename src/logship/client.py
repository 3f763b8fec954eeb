"""
Remote append client capability.

The uploader only depends on the LogsClient protocol. BotoLogsClient is the
CloudWatch Logs implementation on top of a (blocking) boto3 client; calls run
in the loop's default executor.
"""

from __future__ import annotations

import asyncio
import functools
from typing import TYPE_CHECKING, Any, List, Optional, Protocol, Sequence, runtime_checkable

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError
from loguru import logger

from .errors import map_client_error
from .models import AppendResult, LogEvent, LogStream

if TYPE_CHECKING:
    from .settings import UploaderSettings


@runtime_checkable
class LogsClient(Protocol):
    """Operations the upload engine needs from the remote log service.

    Implementations raise RemoteServiceError with a classified kind.
    """

    async def append_events(
        self,
        group: str,
        stream: str,
        events: Sequence[LogEvent],
        token: Optional[str] = None,
    ) -> AppendResult: ...

    async def describe_streams(
        self, group: str, prefix: Optional[str] = None, limit: Optional[int] = None
    ) -> List[LogStream]: ...

    async def create_group(self, group: str) -> None: ...

    async def create_stream(self, group: str, stream: str) -> None: ...

    async def put_retention_policy(self, group: str, days: int) -> None: ...


class BotoLogsClient:
    """LogsClient backed by a boto3 CloudWatch Logs client."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(cls, settings: "UploaderSettings") -> "BotoLogsClient":
        import boto3

        kwargs: dict = {}
        if settings.region:
            kwargs["region_name"] = settings.region
        if settings.endpoint_url:
            kwargs["endpoint_url"] = settings.endpoint_url
        return cls(boto3.client("logs", **kwargs))

    async def _call(self, op: str, **params: Any) -> dict:
        loop = asyncio.get_running_loop()
        fn = getattr(self._client, op)
        try:
            return await loop.run_in_executor(None, functools.partial(fn, **params))
        except ParamValidationError:
            raise
        except (ClientError, BotoCoreError) as exc:
            err = map_client_error(exc)
            logger.debug(f"{op} failed: kind={err.kind.value} code={err.code}")
            raise err from exc

    async def append_events(
        self,
        group: str,
        stream: str,
        events: Sequence[LogEvent],
        token: Optional[str] = None,
    ) -> AppendResult:
        params: dict = {
            "logGroupName": group,
            "logStreamName": stream,
            "logEvents": [ev.to_wire() for ev in events],
        }
        if token:
            params["sequenceToken"] = token
        resp = await self._call("put_log_events", **params)
        rejected = resp.get("rejectedLogEventsInfo")
        if rejected:
            logger.warning(f"PutLogEvents rejected events for {group}:{stream}: {rejected}")
        return AppendResult(next_token=resp.get("nextSequenceToken"))

    async def describe_streams(
        self, group: str, prefix: Optional[str] = None, limit: Optional[int] = None
    ) -> List[LogStream]:
        params: dict = {"logGroupName": group}
        if prefix:
            params["logStreamNamePrefix"] = prefix
        if limit:
            params["limit"] = limit

        out: List[LogStream] = []
        while True:
            resp = await self._call("describe_log_streams", **params)
            for s in resp.get("logStreams", []):
                out.append(
                    LogStream(
                        name=s["logStreamName"],
                        upload_sequence_token=s.get("uploadSequenceToken"),
                    )
                )
            next_token = resp.get("nextToken")
            if limit or not next_token:
                return out
            params["nextToken"] = next_token

    async def create_group(self, group: str) -> None:
        await self._call("create_log_group", logGroupName=group)

    async def create_stream(self, group: str, stream: str) -> None:
        await self._call("create_log_stream", logGroupName=group, logStreamName=stream)

    async def put_retention_policy(self, group: str, days: int) -> None:
        await self._call("put_retention_policy", logGroupName=group, retentionInDays=days)
