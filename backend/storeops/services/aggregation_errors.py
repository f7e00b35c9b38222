# Overview: Error taxonomy for the daily store-revenue aggregation job.

from __future__ import annotations


class AggregationError(Exception):
    """Base class for revenue aggregation failures."""
    pass


class AuthError(AggregationError):
    """Raised when the caller is not authenticated (HTTP 401)."""
    pass


class ValidationError(AggregationError):
    """Raised when request input (e.g. the target date) is malformed (HTTP 400)."""
    pass


class FetchError(AggregationError):
    """
    Raised when stores or order items cannot be retrieved, or the storage
    service answers with an unrecognized shape. Fatal: the job aborts before
    any per-store work (HTTP 500).
    """
    pass


class FilterError(AggregationError):
    """Raised on an unexpected failure while narrowing items to one day (HTTP 500)."""
    pass


class PersistenceError(AggregationError):
    """Raised when one store's summary row cannot be read or written. Recoverable per store."""
    pass


class StoreNotFoundError(AggregationError):
    """Raised when a single-store recompute targets a store missing from the directory."""
    pass
