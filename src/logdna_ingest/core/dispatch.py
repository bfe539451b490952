"""
Batch dispatch to the LogDNA ingest endpoint.

One ``dispatch`` call is one HTTP exchange: the whole batch is accepted or
the call raises ``DeliveryError``. Retrying is left to the caller.
"""

from __future__ import annotations

import time
from typing import Any, Sequence

import httpx

from .._version import __version__
from . import diagnostics
from .errors import DeliveryError
from .serialization import parse_json_bytes, serialize_mapping_to_json_bytes
from .settings import IngestSettings
from .transform import IngestLine

INGEST_PATH = "/logs/ingest"
COMPONENT = "logdna-sink"


def _error_detail(response: httpx.Response) -> dict[str, Any]:
    """Extract structured error detail from a rejected response body."""
    try:
        parsed = parse_json_bytes(response.content)
    except ValueError:
        return {"message": response.text}
    if isinstance(parsed, dict):
        return parsed
    return {"message": response.text}


class IngestDispatcher:
    """Sends batches of ingest lines over a shared ``httpx.AsyncClient``.

    The dispatcher keeps no per-call state, so one instance may be used by
    many concurrent callers as long as the client supports it.
    """

    def __init__(self, client: httpx.AsyncClient, settings: IngestSettings) -> None:
        self._client = client
        self._settings = settings
        self._url = f"{settings.ingester_domain}{INGEST_PATH}"

    @property
    def url(self) -> str:
        return self._url

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._settings.api_key.get_secret_value(),
            "content-type": "application/json",
            "user-agent": f"logdna-ingest/{__version__}",
        }

    def _params(self) -> dict[str, str | int]:
        # Unset identifiers are still sent, as empty values
        return {
            "hostname": self._settings.hostname,
            "mac": self._settings.mac or "",
            "ip": self._settings.ip or "",
            "now": int(time.time()),
        }

    def build_request(self, lines: Sequence[IngestLine]) -> httpx.Request:
        body = serialize_mapping_to_json_bytes({"lines": list(lines)})
        return self._client.build_request(
            "POST",
            self._url,
            params=self._params(),
            headers=self._headers(),
            content=body.data,
        )

    async def dispatch(self, lines: Sequence[IngestLine]) -> None:
        """POST ``lines`` as one batch.

        Raises:
            DeliveryError: on HTTP status >= 400 or a transport failure.
        """
        request = self.build_request(lines)
        diagnostics.debug(
            COMPONENT,
            "sending batch",
            lines=len(lines),
            endpoint=self._url,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            self._warn_transport(exc)
            raise DeliveryError(
                "Failed to reach ingest endpoint", cause=exc
            ) from exc

        try:
            # Drain the body so the connection can go back to the pool
            await response.aread()
        except httpx.HTTPError as exc:
            self._warn_transport(exc)
            raise DeliveryError(
                "Failed to read ingest response", cause=exc
            ) from exc
        finally:
            await response.aclose()

        if response.status_code < 400:
            return

        diagnostic = {
            **_error_detail(response),
            "http_code": response.status_code,
            "http_reason": response.reason_phrase,
        }
        diagnostics.warn(COMPONENT, "ingest request rejected", **diagnostic)
        raise DeliveryError(status_code=response.status_code)

    def _warn_transport(self, exc: Exception) -> None:
        diagnostics.warn(
            COMPONENT,
            "exception while delivering batch",
            endpoint=self._url,
            error_type=type(exc).__name__,
            error=str(exc),
        )


__all__ = ["INGEST_PATH", "IngestDispatcher"]
