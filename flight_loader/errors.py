"""Exceptions raised while loading flights into Elasticsearch."""

from __future__ import annotations

from typing import Optional


class LoaderError(RuntimeError):
    """Base class for every fatal loader error."""

    def __init__(self, message: str, *, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class ReferenceLoadError(LoaderError):
    """A reference extract (airlines or airports) could not be parsed."""


class LookupMissError(LoaderError):
    """A flight references an airport that is not in the reference table."""


class CoercionError(LoaderError):
    """A raw field could not be converted to its typed value."""


class TimezoneError(CoercionError):
    """An airport timezone identifier is unknown to the tz database."""


class DeliveryError(LoaderError):
    """A bulk request failed or reported a failed item."""


class DuplicateDocumentError(DeliveryError):
    """A create-only write hit a document that already exists."""


class IndexAdminError(LoaderError):
    """Creating, deleting or inspecting the target index failed."""


class SourceReadError(LoaderError):
    """A flight source file could not be opened or parsed as CSV."""
