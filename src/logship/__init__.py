"""
logship - ordered, size-aware upload of buffered log events to CloudWatch Logs.

Usage:
    from logship import BotoLogsClient, LogStreamBuffer, get_settings

    client = BotoLogsClient.from_settings(get_settings())
    buf = LogStreamBuffer(client, "my-group", "my-stream", retention_days=14)
    buf.add("hello")
    result = await buf.flush()
"""

from .buffer import LogStreamBuffer
from .client import BotoLogsClient, LogsClient
from .errors import (
    ErrorKind,
    FlushTimeout,
    LogShipError,
    MessageTruncated,
    RemoteServiceError,
    StreamNotFound,
    map_client_error,
)
from .models import AppendResult, LogEvent, LogStream, StreamKey, UploadResult, UploadStatus
from .provisioner import Provisioner
from .settings import UploaderSettings, get_settings
from .sizing import SizeLimits, carve_batch, event_cost
from .tokens import InFlightGuard, TokenStore, inflight_guard, token_store
from .uploader import Uploader, clear_token, upload

__version__ = "1.0.0"
__all__ = [
    # engine
    "Uploader",
    "upload",
    "clear_token",
    "Provisioner",
    "LogStreamBuffer",
    # client
    "LogsClient",
    "BotoLogsClient",
    # state
    "TokenStore",
    "InFlightGuard",
    "token_store",
    "inflight_guard",
    # sizing
    "SizeLimits",
    "carve_batch",
    "event_cost",
    # models
    "LogEvent",
    "LogStream",
    "StreamKey",
    "AppendResult",
    "UploadResult",
    "UploadStatus",
    # errors
    "ErrorKind",
    "LogShipError",
    "RemoteServiceError",
    "MessageTruncated",
    "FlushTimeout",
    "StreamNotFound",
    "map_client_error",
    # config
    "UploaderSettings",
    "get_settings",
]
