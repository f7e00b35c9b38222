# Overview: Store directory loading and the lookup indices used for store resolution.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .aggregation_errors import FetchError
from .entity_store import EntityStore, EntityStoreError, normalize_listing


def normalize_store_name(name: str | None) -> str:
    """Lowercase + trim; the comparison key for store names."""
    return (name or "").strip().lower()


@dataclass
class StoreIndices:
    by_id: dict[str, dict] = field(default_factory=dict)
    by_normalized_name: dict[str, dict] = field(default_factory=dict)
    by_channel_code: dict[str, dict] = field(default_factory=dict)


def load_stores(entity_store: EntityStore) -> list[dict]:
    """
    Fetch the full store directory once.

    Raises FetchError when the service fails, answers with an unrecognized
    shape, or returns a store record without an id.
    """
    try:
        stores = normalize_listing(entity_store.list("Store"))
    except EntityStoreError as exc:
        raise FetchError(f"Error fetching stores: {exc}") from exc

    for store in stores:
        if not isinstance(store, dict) or not store.get("id"):
            raise FetchError(f"Malformed store record in directory: {store!r}")
    return stores


def build_indices(stores: list[dict], channel_table: Mapping[str, str]) -> StoreIndices:
    """
    Build id, normalized-name and channel-code lookups.

    channel_table maps POS channel code -> expected store name; a code is
    indexed only when a directory store carries that name.
    """
    indices = StoreIndices()
    codes_by_name: dict[str, list[str]] = {}
    for code, expected_name in channel_table.items():
        codes_by_name.setdefault(normalize_store_name(expected_name), []).append(code)

    for store in stores:
        indices.by_id[str(store["id"])] = store

        normalized = normalize_store_name(store.get("name"))
        if not normalized:
            continue
        indices.by_normalized_name[normalized] = store
        for code in codes_by_name.get(normalized, []):
            indices.by_channel_code[code] = store

    return indices
