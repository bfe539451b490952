"""
Delivery metrics for the LogDNA shipper.

Counts shipped batches, shipped lines and failed deliveries. In-memory
counters are always kept so tests can assert on them; Prometheus counters are
only created when metrics are enabled, in an isolated registry to avoid global
registration noise.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter


@dataclass
class DeliveryMetrics:
    """Captured counters for quick assertions in tests."""

    batches_sent: int = 0
    lines_sent: int = 0
    delivery_failures: int = 0


class MetricsCollector:
    """Sink-scoped async metrics collector.

    When disabled every method is a safe no-op apart from the in-memory
    counters.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = DeliveryMetrics()

        self._c_batches: Any | None = None
        self._c_lines: Any | None = None
        self._c_failures: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_batches = Counter(
                "logdna_batches_sent_total",
                "Total number of batches accepted by the ingest endpoint",
                registry=self._registry,
            )
            self._c_lines = Counter(
                "logdna_lines_sent_total",
                "Total number of lines accepted by the ingest endpoint",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "logdna_delivery_failures_total",
                "Total number of failed batch deliveries",
                ["reason"],
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_batch_sent(self, line_count: int) -> None:
        async with self._lock:
            self._state.batches_sent += 1
            self._state.lines_sent += line_count
        if not self._enabled:
            return
        if self._c_batches is not None:
            self._c_batches.inc()
        if self._c_lines is not None:
            self._c_lines.inc(line_count)

    async def record_delivery_failure(self, *, reason: str = "http") -> None:
        async with self._lock:
            self._state.delivery_failures += 1
        if not self._enabled:
            return
        if self._c_failures is not None:
            self._c_failures.labels(reason=reason).inc()

    async def snapshot(self) -> DeliveryMetrics:
        async with self._lock:
            return DeliveryMetrics(
                batches_sent=self._state.batches_sent,
                lines_sent=self._state.lines_sent,
                delivery_failures=self._state.delivery_failures,
            )
