# Overview: Idempotent upsert of DailyStoreRevenue rows keyed by (store_id, date).

from __future__ import annotations

from dataclasses import dataclass, field

from .aggregation_errors import PersistenceError
from .entity_store import EntityStore, EntityStoreError, normalize_listing
from .revenue_aggregator import DailyStoreRevenueRecord


COLLECTION = "DailyStoreRevenue"

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_ERROR = "error"


@dataclass
class Outcome:
    action: str
    store_id: str
    store_name: str
    date: str
    data: dict = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        payload = {"action": self.action}
        if self.action == ACTION_ERROR:
            payload.update(
                store_id=self.store_id,
                store_name=self.store_name,
                date=self.date,
                error=self.error,
            )
        else:
            payload.update(self.data)
        return payload


def find_existing(entity_store: EntityStore, store_id: str, day: str) -> dict | None:
    try:
        rows = normalize_listing(entity_store.filter(COLLECTION, {"store_id": store_id, "date": day}))
    except EntityStoreError as exc:
        raise PersistenceError(f"Error checking existing summary: {exc}") from exc
    return rows[0] if rows else None


def upsert(entity_store: EntityStore, record: DailyStoreRevenueRecord) -> Outcome:
    """
    Write the record as the store's row for the day.

    An existing row is updated with the full record (replace, not merge);
    otherwise a row is created. Raises PersistenceError on storage failure.
    """
    data = record.to_dict()
    existing = find_existing(entity_store, record.store_id, record.date)

    try:
        if existing is not None:
            entity_store.update(COLLECTION, existing["id"], data)
            action = ACTION_UPDATED
        else:
            entity_store.create(COLLECTION, data)
            action = ACTION_CREATED
    except (EntityStoreError, KeyError, TypeError) as exc:
        verb = "updating" if existing is not None else "creating"
        raise PersistenceError(f"Error {verb} summary: {exc}") from exc

    return Outcome(
        action=action,
        store_id=record.store_id,
        store_name=record.store_name,
        date=record.date,
        data=data,
    )


def error_outcome(record: DailyStoreRevenueRecord, exc: Exception) -> Outcome:
    return Outcome(
        action=ACTION_ERROR,
        store_id=record.store_id,
        store_name=record.store_name,
        date=record.date,
        error=str(exc),
    )
