"""
Demo script for LogStreamBuffer.

Ships a burst of log lines to CloudWatch Logs with a caller-driven flush loop,
then drains and releases the stream on shutdown.

Requires AWS credentials and LOGSHIP_REGION (or --region via the CLI).
"""

import asyncio
import socket

from loguru import logger

from logship import BotoLogsClient, LogStreamBuffer, get_settings


def stream_name() -> str:
    return f"demo-{socket.gethostname()}"


def on_error(err: Exception) -> None:
    logger.warning(f"upload failed: {err}")


async def main():
    settings = get_settings()
    client = BotoLogsClient.from_settings(settings)
    buf = LogStreamBuffer(
        client,
        "logship-demo",
        stream_name,
        retention_days=settings.retention_in_days or 1,
        error_handler=on_error,
    )

    logger.info("producing 2,000 lines")
    for i in range(2000):
        buf.add(f"demo line {i}")
        if i % 500 == 499:
            result = await buf.flush()
            logger.info(f"flush: status={result.status.value} sent={result.sent} pending={len(buf)}")

    err = await buf.close()
    logger.info(f"closed (error={err})")


if __name__ == "__main__":
    asyncio.run(main())
