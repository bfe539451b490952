"""
Command-line entry point for logdna-ingest.

Reads JSON-lines records from a file (or stdin) and ships them to the ingest
endpoint in chunks. Connection settings come from ``LOGDNA_*`` environment
variables.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from typing import IO, Iterator, Sequence

from ..core.errors import ConfigurationError, DeliveryError
from ..core.settings import load_settings
from ..core.transform import LogEvent
from ..plugins.sinks.logdna import LogDNASink

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_INPUT = 2


class InputError(ValueError):
    """A line of input was not a JSON object."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logdna-ingest",
        description="Ship JSON-lines log records to the LogDNA ingest API",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="-",
        help="JSON-lines input file ('-' for stdin)",
    )
    parser.add_argument("--tag", default=None, help="Tag applied to every record")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Records per request (default: 500)",
    )
    return parser


def read_events(stream: IO[str], tag: str | None) -> Iterator[LogEvent]:
    for lineno, raw in enumerate(stream, start=1):
        text = raw.strip()
        if not text:
            continue
        try:
            # json keeps surrogate-escaped bytes so the transformer can repair them
            record = json.loads(text)
        except ValueError as exc:
            raise InputError(f"line {lineno}: invalid JSON ({exc})") from exc
        if not isinstance(record, dict):
            raise InputError(f"line {lineno}: expected a JSON object")
        timestamp = record.get("timestamp")
        if timestamp is None:
            timestamp = int(time.time())
        yield timestamp, record, tag


def _stdin() -> IO[str]:
    stream = sys.stdin
    reconfigure = getattr(stream, "reconfigure", None)
    if callable(reconfigure):
        # Same lenient decoding as file input
        reconfigure(encoding="utf-8", errors="surrogateescape")
    return stream


def _chunked(events: Iterator[LogEvent], size: int) -> Iterator[list[LogEvent]]:
    chunk: list[LogEvent] = []
    for event in events:
        chunk.append(event)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


async def ship(stream: IO[str], *, tag: str | None, batch_size: int) -> int:
    """Ship every record in ``stream``; returns the number of records sent."""
    sink = LogDNASink(load_settings())
    sent = 0
    await sink.start()
    try:
        for chunk in _chunked(read_events(stream, tag), batch_size):
            await sink.write_chunk(chunk)
            sent += len(chunk)
    finally:
        await sink.stop()
    return sent


async def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.batch_size < 1:
        print("Error: --batch-size must be at least 1", file=sys.stderr)
        return EXIT_BAD_INPUT
    try:
        if args.file == "-":
            sent = await ship(_stdin(), tag=args.tag, batch_size=args.batch_size)
        else:
            with open(args.file, encoding="utf-8", errors="surrogateescape") as fh:
                sent = await ship(fh, tag=args.tag, batch_size=args.batch_size)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except (ConfigurationError, DeliveryError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    print(f"Shipped {sent} record(s)", file=sys.stderr)
    return EXIT_OK


def cli_main() -> int:
    """CLI main function for non-async entry."""
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(cli_main())
