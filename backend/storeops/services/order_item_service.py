# Overview: Fetches the recency-sorted window of raw POS order items.

from __future__ import annotations

from dataclasses import dataclass

from .aggregation_errors import FetchError
from .entity_store import EntityStore, EntityStoreError, normalize_listing


DEFAULT_FETCH_LIMIT = 10000


@dataclass
class FetchedItems:
    items: list[dict]
    limit: int

    @property
    def reached_limit(self) -> bool:
        """True when the window is full and older items of the day may be missing."""
        return len(self.items) >= self.limit


def fetch_recent_order_items(entity_store: EntityStore, limit: int = DEFAULT_FETCH_LIMIT) -> FetchedItems:
    """
    Fetch up to `limit` OrderItem records, newest modifiedDate first.

    Raises FetchError on a storage failure, an unrecognized response shape,
    or records that are not objects.
    """
    if limit <= 0:
        raise FetchError("Order item fetch limit must be positive")

    try:
        items = normalize_listing(entity_store.list("OrderItem", sort="-modifiedDate", limit=limit))
    except EntityStoreError as exc:
        raise FetchError(f"Error fetching order items: {exc}") from exc

    bad = next((item for item in items if not isinstance(item, dict)), None)
    if bad is not None:
        raise FetchError(f"Order item listing contains a non-object record: {type(bad).__name__}")

    return FetchedItems(items=items, limit=limit)
