"""
Error hierarchy for logdna-ingest.

Only batch-level failures surface as exceptions. Per-record defects (bad
text encoding, missing app/file identity) are repaired by the transformer and
never raised.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse classification used for diagnostics and host retry decisions."""

    CONFIGURATION = "configuration"
    NETWORK = "network"
    SERIALIZATION = "serialization"


class IngestError(Exception):
    """Base class for all errors raised by this package."""

    category: ErrorCategory = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.__cause__ is not None:
            data["cause"] = type(self.__cause__).__name__
        return data


class ConfigurationError(IngestError):
    """Settings could not be built from the supplied values."""

    category = ErrorCategory.CONFIGURATION


class DeliveryError(IngestError):
    """A batch was not accepted by the ingest endpoint.

    Raised for HTTP status codes >= 400 and for transport failures. The
    message is generic; structured detail about the rejection is
    emitted through diagnostics instead. ``status_code`` is ``None`` when the
    request never produced a response.
    """

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str = "Encountered server error",
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "ErrorCategory",
    "IngestError",
]
