"""
logdna-ingest - ship structured log records to the LogDNA ingest API.

Records are transformed into ingest lines (level promotion, file/app
defaulting, text sanitization), batched into one JSON body per chunk and
POSTed over a persistent async HTTP client.
"""

from ._version import __version__
from .core.dispatch import IngestDispatcher
from .core.errors import ConfigurationError, DeliveryError, IngestError
from .core.resources import ingest_client, open_ingest_client
from .core.settings import IngestSettings, load_settings
from .core.transform import IngestLine, build_batch, transform_record
from .plugins.sinks.logdna import LogDNASink

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "IngestDispatcher",
    "IngestError",
    "IngestLine",
    "IngestSettings",
    "LogDNASink",
    "__version__",
    "build_batch",
    "ingest_client",
    "load_settings",
    "open_ingest_client",
    "transform_record",
]
