from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import typer

from .client import BotoLogsClient, LogsClient
from .models import LogEvent, UploadStatus
from .provisioner import Provisioner
from .settings import get_settings
from .sizing import SizeLimits
from .tokens import InFlightGuard, TokenStore
from .uploader import Uploader
from .utils import now_millis

app = typer.Typer(help="logship operational CLI")

# ---------------------------
# Common options
# ---------------------------


def group_opt() -> str:
    return typer.Option(..., "--group", "-g", envvar="LOGSHIP_GROUP", help="Log group name")


def stream_opt() -> str:
    return typer.Option(..., "--stream", "-s", envvar="LOGSHIP_STREAM", help="Log stream name")


def region_opt() -> Optional[str]:
    return typer.Option(None, "--region", help="AWS region (defaults to LOGSHIP_REGION)")


def make_client(region: Optional[str] = None) -> LogsClient:
    settings = get_settings()
    if region:
        settings = settings.model_copy(update={"region": region})
    return BotoLogsClient.from_settings(settings)


def _read_events(path: str) -> List[LogEvent]:
    if path == "-":
        lines = sys.stdin.read().splitlines()
    else:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    ts = now_millis()
    return [LogEvent(message=line, timestamp=ts) for line in lines if line.strip()]


# ---------------------------
# Commands
# ---------------------------


@app.command("ship")
def ship(
    path: str = typer.Argument("-", help="File to ship, '-' for stdin"),
    group: str = group_opt(),
    stream: str = stream_opt(),
    retention_days: Optional[int] = typer.Option(
        None, "--retention-days", min=0, help="Retention to request for the group"
    ),
    ensure_log_group: bool = typer.Option(
        True, "--ensure-log-group/--no-ensure-log-group", help="Create group/stream when missing"
    ),
    region: Optional[str] = region_opt(),
):
    """Upload every line of PATH, batch by batch."""
    settings = get_settings()
    days = settings.retention_in_days if retention_days is None else retention_days
    events = _read_events(path)
    client = make_client(region)
    uploader = Uploader.from_settings(
        client, settings, tokens=TokenStore(), guard=InFlightGuard()
    )

    async def _run() -> dict:
        batches = 0
        sent = 0
        while events:
            result = await uploader.upload(
                group, stream, events, days, ensure_log_group=ensure_log_group
            )
            if result.status == UploadStatus.TRUNCATED:
                typer.echo(f"warning: {result.error}", err=True)
                continue
            if result.error is not None:
                return {
                    "sent": sent,
                    "batches": batches,
                    "pending": len(events),
                    "error": str(result.error),
                }
            batches += 1
            sent += result.sent
        await uploader.provisioner.wait_pending()
        return {"sent": sent, "batches": batches, "pending": 0}

    summary = asyncio.run(_run())
    typer.echo(json.dumps(summary, indent=2))
    if "error" in summary:
        raise typer.Exit(code=1)


@app.command("ensure")
def ensure(
    group: str = group_opt(),
    stream: str = stream_opt(),
    retention_days: int = typer.Option(0, "--retention-days", min=0),
    region: Optional[str] = region_opt(),
):
    """Create the group and stream if needed and print the stream's token."""
    prov = Provisioner(make_client(region))

    async def _run():
        await prov.ensure_group_present(group, retention_days)
        s = await prov.ensure_stream_present(group, stream)
        await prov.wait_pending()
        return s

    s = asyncio.run(_run())
    typer.echo(
        json.dumps(
            {"group": group, "stream": s.name, "upload_sequence_token": s.upload_sequence_token},
            indent=2,
        )
    )


@app.command("describe")
def describe(
    group: str = group_opt(),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Stream name prefix"),
    region: Optional[str] = region_opt(),
):
    """List streams of a group as NDJSON."""
    client = make_client(region)
    for s in asyncio.run(client.describe_streams(group, prefix=prefix)):
        typer.echo(json.dumps({"name": s.name, "upload_sequence_token": s.upload_sequence_token}))


@app.command("limits")
def limits():
    """Print the effective batch size limits."""
    settings = get_settings()
    lim = SizeLimits(
        max_event_bytes=settings.max_event_bytes,
        max_batch_bytes=settings.max_batch_bytes,
        event_overhead_bytes=settings.event_overhead_bytes,
    )
    typer.echo(json.dumps(asdict(lim), indent=2))


if __name__ == "__main__":
    app()
