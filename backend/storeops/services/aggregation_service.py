# Overview: Daily store-revenue job orchestration and result reporting.

"""
Daily Store Revenue Aggregation

Runs one pass for one calendar day:

1. load the store directory and build lookup indices
2. fetch the newest window of POS order items
3. keep the items of the target day
4. resolve every item to one store (channel code > store name > store id)
5. aggregate every directory store, including stores without items
6. upsert one DailyStoreRevenue row per (store, date)

Steps 1-3 are fatal gates: a failure there raises before any row is
written, because a partial directory or item set would under-report.
Per-store writes are isolated: a failed upsert is recorded in the report
and the loop moves on to the next store. Re-running a day overwrites its
rows in place, so re-invocation is the retry mechanism.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Mapping

from .aggregation_errors import PersistenceError, StoreNotFoundError, ValidationError
from .date_window import filter_by_day
from .entity_store import EntityStore
from .order_item_service import DEFAULT_FETCH_LIMIT, fetch_recent_order_items
from .revenue_aggregator import aggregate
from .revenue_persistence import Outcome, error_outcome, upsert
from .store_directory import build_indices, load_stores, normalize_store_name
from .store_resolver import channel_distribution, resolve_and_group
from storeops.config import DEFAULT_CHANNEL_STORE_NAMES
from storeops.time_utils import business_timezone, parse_local_timestamp


logger = logging.getLogger(__name__)

SAMPLE_ITEM_COUNT = 3


@dataclass
class AggregationSettings:
    tz: tzinfo
    channel_table: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_CHANNEL_STORE_NAMES))
    fetch_limit: int = DEFAULT_FETCH_LIMIT

    @classmethod
    def from_config(cls, config) -> "AggregationSettings":
        return cls(
            tz=business_timezone(config.get("BUSINESS_TIMEZONE")),
            channel_table=dict(config.get("CHANNEL_STORE_NAMES") or DEFAULT_CHANNEL_STORE_NAMES),
            fetch_limit=int(config.get("ORDER_ITEM_FETCH_LIMIT") or DEFAULT_FETCH_LIMIT),
        )


@dataclass
class AggregationReport:
    date: str
    stores_processed: int
    total_items_fetched: int
    items_for_date: int
    unmatched_items_count: int
    skipped_timestamps: int
    reached_limit: bool
    results: list[Outcome]

    @property
    def failed_stores(self) -> int:
        return sum(1 for outcome in self.results if outcome.action == "error")

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": f"Aggregated data for {self.date}",
            "date": self.date,
            "stores_processed": self.stores_processed,
            "total_items_fetched": self.total_items_fetched,
            "items_for_date": self.items_for_date,
            "unmatched_items_count": self.unmatched_items_count,
            "skipped_timestamps": self.skipped_timestamps,
            "reached_limit": self.reached_limit,
            "results": [outcome.to_dict() for outcome in self.results],
        }


def _log_sample_items(log: logging.Logger, items: list[dict]) -> None:
    if not log.isEnabledFor(logging.DEBUG):
        return
    for index, item in enumerate(items[:SAMPLE_ITEM_COUNT], start=1):
        log.debug(
            "Sample item %d: name=%r modifiedDate=%r store_name=%r channel=%r net=%r",
            index,
            item.get("orderItemName"),
            item.get("modifiedDate"),
            item.get("store_name"),
            item.get("printedOrderItemChannel"),
            item.get("finalPriceWithSessionDiscountsAndSurcharges"),
        )


def run_daily_aggregation(
    entity_store: EntityStore,
    *,
    target_date: date,
    settings: AggregationSettings,
    log: logging.Logger | None = None,
) -> AggregationReport:
    """
    Aggregate `target_date` for every store in the directory.

    Raises FetchError or FilterError before any write; per-store persistence
    failures end up in the report as "error" outcomes.
    """
    log = log or logger
    day = target_date.isoformat()
    log.info("Aggregating daily store revenue for %s", day)

    stores = load_stores(entity_store)
    indices = build_indices(stores, settings.channel_table)
    log.info(
        "Loaded %d stores (%d channel codes mapped)",
        len(stores),
        len(indices.by_channel_code),
    )

    fetched = fetch_recent_order_items(entity_store, settings.fetch_limit)
    log.info("Fetched %d order items", len(fetched.items))
    if fetched.reached_limit:
        log.warning(
            "Order item fetch hit the limit of %d; older items of %s may be missing",
            fetched.limit,
            day,
        )
    _log_sample_items(log, fetched.items)

    window = filter_by_day(fetched.items, target_date, settings.tz)
    if window.skipped_timestamps:
        log.warning("Skipped %d items with missing or unparseable modifiedDate", window.skipped_timestamps)
    if not window.items:
        log.warning("No order items found for %s", day)
    log.debug("Channel distribution for %s: %s", day, channel_distribution(window.items))

    resolved = resolve_and_group(window.items, indices)
    log.info("Resolved %d of %d items to %d stores", resolved.matched_count, len(window.items), len(resolved.grouped))
    if resolved.unmatched:
        log.warning("%d items for %s matched no store", len(resolved.unmatched), day)

    results: list[Outcome] = []
    for store in stores:
        items = resolved.grouped.get(str(store["id"]), [])
        record = aggregate(store, items, target_date)
        try:
            outcome = upsert(entity_store, record)
        except PersistenceError as exc:
            log.error("Failed to persist revenue for %s on %s: %s", record.store_name, day, exc)
            outcome = error_outcome(record, exc)
        else:
            log.info(
                "%s %s: %d items, %d orders",
                outcome.action.capitalize(),
                record.store_name,
                record.total_items,
                record.total_orders,
            )
        results.append(outcome)

    return AggregationReport(
        date=day,
        stores_processed=len(stores),
        total_items_fetched=len(fetched.items),
        items_for_date=len(window.items),
        unmatched_items_count=len(resolved.unmatched),
        skipped_timestamps=window.skipped_timestamps,
        reached_limit=fetched.reached_limit,
        results=results,
    )


@dataclass
class StoreDayRecompute:
    date: str
    store: dict
    outcome: Outcome | None

    def to_dict(self) -> dict:
        if self.outcome is None:
            return {
                "success": True,
                "message": "No order items found for this date/store",
                "date": self.date,
                "store": self.store.get("name"),
            }
        data = self.outcome.data
        return {
            "success": True,
            "message": f"DailyStoreRevenue {self.outcome.action} successfully",
            "action": self.outcome.action,
            "date": self.date,
            "store": self.outcome.store_name,
            "total_revenue": data["total_finalPriceWithSessionDiscountsAndSurcharges"],
            "total_orders": data["total_orders"],
        }


def recompute_store_day(
    entity_store: EntityStore,
    *,
    modified_date: str,
    store_id: str,
    store_name: str | None,
    settings: AggregationSettings,
    log: logging.Logger | None = None,
) -> StoreDayRecompute:
    """
    Rebuild one store's row for the day of a freshly imported order item.

    The store is looked up by id, then by name. When the store has no items
    that day nothing is written. Persistence errors propagate.
    """
    log = log or logger
    try:
        timestamp = parse_local_timestamp(modified_date, settings.tz)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(f"Invalid modifiedDate: {modified_date!r}") from exc
    if timestamp is None:
        raise ValidationError("modifiedDate is required")
    target_date = timestamp.date()
    day = target_date.isoformat()

    stores = load_stores(entity_store)
    indices = build_indices(stores, settings.channel_table)
    store = indices.by_id.get(str(store_id)) or indices.by_normalized_name.get(
        normalize_store_name(store_name)
    )
    if store is None:
        raise StoreNotFoundError(f"Store not found: {store_id}")

    fetched = fetch_recent_order_items(entity_store, settings.fetch_limit)
    window = filter_by_day(fetched.items, target_date, settings.tz)
    resolved = resolve_and_group(window.items, indices)
    items = resolved.grouped.get(str(store["id"]), [])

    log.info("Recomputing %s on %s from %d items", store.get("name"), day, len(items))
    if not items:
        return StoreDayRecompute(date=day, store=store, outcome=None)

    outcome = upsert(entity_store, aggregate(store, items, target_date))
    return StoreDayRecompute(date=day, store=store, outcome=outcome)
