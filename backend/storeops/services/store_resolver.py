# Overview: Assigns each order item to exactly one store by priority matching.

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .store_directory import StoreIndices, normalize_store_name


NO_CHANNEL = "NO_CHANNEL"


@dataclass
class ResolvedItems:
    grouped: dict[str, list[dict]] = field(default_factory=dict)
    unmatched: list[dict] = field(default_factory=list)

    @property
    def matched_count(self) -> int:
        return sum(len(items) for items in self.grouped.values())


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def resolve_store(item: dict, indices: StoreIndices) -> dict | None:
    """
    Store for one item, first rule that matches:

    1. printedOrderItemChannel known to the channel table
    2. store_name, trimmed and lowercased
    3. store_id present in the directory

    Channel codes are configured per POS terminal and win over free-text
    names; raw ids come last because they can point at reassigned stores.
    """
    channel = _text(item.get("printedOrderItemChannel"))
    if channel and channel in indices.by_channel_code:
        return indices.by_channel_code[channel]

    name = normalize_store_name(_text(item.get("store_name")))
    if name and name in indices.by_normalized_name:
        return indices.by_normalized_name[name]

    store_id = _text(item.get("store_id"))
    if store_id and store_id in indices.by_id:
        return indices.by_id[store_id]

    return None


def resolve_and_group(items: list[dict], indices: StoreIndices) -> ResolvedItems:
    """Group items by resolved store id; items matching no rule go to `unmatched`."""
    resolved = ResolvedItems()
    for item in items:
        store = resolve_store(item, indices)
        if store is None:
            resolved.unmatched.append(item)
            continue
        resolved.grouped.setdefault(str(store["id"]), []).append(item)
    return resolved


def channel_distribution(items: list[dict]) -> dict[str, int]:
    """Item count per printedOrderItemChannel, for diagnostics."""
    counts = Counter(_text(item.get("printedOrderItemChannel")) or NO_CHANNEL for item in items)
    return dict(counts.most_common())
