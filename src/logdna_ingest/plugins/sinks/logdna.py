"""
LogDNA output sink.

Glues the record transformer and batch dispatcher into the lifecycle a host
logging pipeline expects: ``start`` opens the persistent HTTP client,
``write_chunk`` ships one buffered chunk, ``stop`` closes the client.
Delivery failures are re-raised so the host can retry the chunk under its own
policy.
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx

from ...core import diagnostics
from ...core.dispatch import IngestDispatcher
from ...core.errors import DeliveryError
from ...core.resources import open_ingest_client
from ...core.settings import IngestSettings, load_settings
from ...core.transform import LogEvent, build_batch
from ...metrics.metrics import MetricsCollector

__all__ = ["LogDNASink"]


class LogDNASink:
    """Remote sink that POSTs batches of log lines to the LogDNA ingest API."""

    name = "logdna"

    def __init__(
        self,
        config: IngestSettings | dict[str, Any] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> None:
        if isinstance(config, IngestSettings):
            settings = config
        else:
            settings = load_settings(**{**(config or {}), **kwargs})
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        if metrics is None and settings.enable_metrics:
            metrics = MetricsCollector(enabled=True)
        self._metrics = metrics
        self._dispatcher: IngestDispatcher | None = None
        if client is not None:
            self._dispatcher = IngestDispatcher(client, settings)
        self._last_status: int | None = None
        self._last_error: str | None = None
        self._delivered = False
        if settings.internal_logging_enabled:
            diagnostics.configure(enabled=True)

    @property
    def settings(self) -> IngestSettings:
        return self._settings

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    async def start(self) -> None:
        if self._dispatcher is not None:
            return
        self._client = open_ingest_client(self._settings)
        self._owns_client = True
        self._dispatcher = IngestDispatcher(self._client, self._settings)

    async def stop(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._dispatcher = None

    async def write_chunk(self, events: Iterable[LogEvent]) -> None:
        """Ship one chunk of ``(timestamp, record, tag)`` events.

        Raises:
            DeliveryError: when the endpoint rejects the batch or cannot be
                reached. Nothing is retried here.
        """
        if self._dispatcher is None:
            raise RuntimeError("LogDNASink.start() must be called before writing")
        payload = build_batch(events, self._settings)
        lines = payload["lines"]
        if not lines:
            return
        try:
            await self._dispatcher.dispatch(lines)
        except DeliveryError as exc:
            self._last_status = exc.status_code
            self._last_error = str(exc)
            if self._metrics is not None:
                reason = "http" if exc.status_code is not None else "transport"
                await self._metrics.record_delivery_failure(reason=reason)
            raise
        self._last_status = None
        self._last_error = None
        self._delivered = True
        if self._metrics is not None:
            await self._metrics.record_batch_sent(len(lines))

    async def health_check(self) -> bool:
        return self._delivered and self._last_error is None


# Plugin metadata for discovery
PLUGIN_METADATA = {
    "name": "logdna",
    "version": "1.0.0",
    "plugin_type": "sink",
    "entry_point": "logdna_ingest.plugins.sinks.logdna:LogDNASink",
    "description": "Batches log records and POSTs them to the LogDNA ingest API.",
    "author": "logdna-ingest",
    "api_version": "1.0",
}
