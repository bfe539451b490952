from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from ...core.transform import LogEvent
from .logdna import LogDNASink


@runtime_checkable
class ChunkSink(Protocol):
    """Base async chunk sink interface.

    Chunk sinks receive one delivery attempt's worth of buffered events from
    the host pipeline and either accept all of them or raise. Retry, backoff
    and buffering belong to the host.
    """

    async def start(self) -> None:  # Optional lifecycle hook
        ...

    async def stop(self) -> None:  # Optional lifecycle hook
        ...

    async def write_chunk(self, _events: Iterable[LogEvent]) -> None:  # noqa: ARG002, D401
        """Deliver one chunk of ``(timestamp, record, tag)`` events."""
        ...


__all__ = [
    "ChunkSink",
    "LogDNASink",
]
