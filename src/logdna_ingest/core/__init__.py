"""
Core of the LogDNA shipper: record transformation, batch dispatch, and the
settings, errors and diagnostics they share.
"""

from .dispatch import IngestDispatcher
from .errors import ConfigurationError, DeliveryError, ErrorCategory, IngestError
from .resources import ingest_client, open_ingest_client
from .settings import IngestSettings, load_settings
from .transform import (
    BatchPayload,
    IngestLine,
    LogEvent,
    build_batch,
    resolve_level,
    transform_record,
)

__all__ = [
    "BatchPayload",
    "ConfigurationError",
    "DeliveryError",
    "ErrorCategory",
    "IngestDispatcher",
    "IngestError",
    "IngestLine",
    "IngestSettings",
    "LogEvent",
    "build_batch",
    "ingest_client",
    "load_settings",
    "open_ingest_client",
    "resolve_level",
    "transform_record",
]
