# Overview: Entity-storage access (List/Filter/Create/Update over opaque collections).

"""
Entity storage adapters.

The console keeps its records in a generic entity-storage service that
exposes four operations over named collections (Store, OrderItem,
DailyStoreRevenue). Two adapters implement the same interface:

- SqlEntityStore: the local database through Flask-SQLAlchemy (development,
  tests, single-host deployments)
- HttpEntityStore: the remote service over HTTP (httpx)

List and Filter responses are returned exactly as received. The remote
service is loosely specified and may answer with a bare array or with an
envelope object; callers run normalize_listing() before using them.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Store, OrderItem, DailyStoreRevenue


COLLECTION_MODELS = {
    "Store": Store,
    "OrderItem": OrderItem,
    "DailyStoreRevenue": DailyStoreRevenue,
}

# Envelope properties that may carry the record array
LISTING_KEYS = ("data", "items", "results")


class EntityStoreError(Exception):
    """Raised when the storage service is unreachable or rejects a request."""
    pass


class UnrecognizedShapeError(EntityStoreError):
    """Raised when a listing response cannot be normalized to a list."""
    pass


def normalize_listing(payload: Any) -> list:
    """
    Normalize a List/Filter response to a list of records.

    Accepts a bare array or an object with a `data`, `items` or `results`
    array. Anything else raises UnrecognizedShapeError; an unrecognized shape
    is never treated as an empty result.
    """
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        for key in LISTING_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
        raise UnrecognizedShapeError(
            f"Expected an array under one of {', '.join(LISTING_KEYS)}; "
            f"got object with keys {sorted(payload.keys())}"
        )

    raise UnrecognizedShapeError(
        f"Expected an array or an envelope object, got {type(payload).__name__}"
    )


class EntityStore(Protocol):
    def list(self, collection: str, *, sort: str | None = None, limit: int | None = None) -> Any:
        ...

    def filter(
        self,
        collection: str,
        criteria: dict,
        *,
        sort: str | None = None,
        limit: int | None = None,
    ) -> Any:
        ...

    def create(self, collection: str, data: dict) -> dict:
        ...

    def update(self, collection: str, entity_id: str, data: dict) -> dict:
        ...


class SqlEntityStore:
    """Entity storage on the local database. Filters are field equality only."""

    def _model(self, collection: str):
        model = COLLECTION_MODELS.get(collection)
        if model is None:
            raise EntityStoreError(f"Unknown collection: {collection}")
        return model

    def _query(self, model, criteria: dict, sort: str | None, limit: int | None):
        query = db.session.query(model)
        try:
            for field, value in criteria.items():
                query = query.filter(model.column_for(field) == value)

            if sort:
                descending = sort.startswith("-")
                column = model.column_for(sort.lstrip("-+"))
                query = query.order_by(column.desc() if descending else column.asc())
        except KeyError as exc:
            raise EntityStoreError(f"Unknown field {exc.args[0]!r} on {model.__name__}") from exc

        if limit is not None:
            query = query.limit(limit)
        return query

    def list(self, collection: str, *, sort: str | None = None, limit: int | None = None) -> list[dict]:
        return self.filter(collection, {}, sort=sort, limit=limit)

    def filter(
        self,
        collection: str,
        criteria: dict,
        *,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        model = self._model(collection)
        try:
            rows = self._query(model, criteria, sort, limit).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise EntityStoreError(f"Failed to read {collection}: {exc}") from exc
        return [row.to_dict() for row in rows]

    def create(self, collection: str, data: dict) -> dict:
        model = self._model(collection)
        row = model()
        if data.get("id"):
            row.id = data["id"]
        row.apply_payload(data)
        try:
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise EntityStoreError(f"Failed to create {collection}: {exc}") from exc
        return row.to_dict()

    def update(self, collection: str, entity_id: str, data: dict) -> dict:
        model = self._model(collection)
        try:
            row = db.session.query(model).filter_by(id=entity_id).first()
            if row is None:
                raise EntityStoreError(f"{collection} {entity_id} not found")
            row.apply_payload(data, replace=True)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise EntityStoreError(f"Failed to update {collection} {entity_id}: {exc}") from exc
        return row.to_dict()


class HttpEntityStore:
    """
    Entity storage on the remote service.

    Routes: GET/POST {base_url}/entities/{collection},
    PUT {base_url}/entities/{collection}/{id}. Filter criteria travel as a
    JSON-encoded `q` query parameter; sort uses the "-field" convention.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        if client is None:
            if not base_url:
                raise EntityStoreError("ENTITY_STORE_URL is required for the http backend")
            headers = {"Accept": "application/json"}
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            client = httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)
        self._client = client

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EntityStoreError(
                f"{method} {path} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EntityStoreError(f"{method} {path} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise EntityStoreError(f"{method} {path} returned a non-JSON body") from exc

    @staticmethod
    def _listing_params(sort: str | None, limit: int | None) -> dict:
        params: dict[str, Any] = {}
        if sort:
            params["sort"] = sort
        if limit is not None:
            params["limit"] = limit
        return params

    def list(self, collection: str, *, sort: str | None = None, limit: int | None = None) -> Any:
        return self._request("GET", f"/entities/{collection}", params=self._listing_params(sort, limit))

    def filter(
        self,
        collection: str,
        criteria: dict,
        *,
        sort: str | None = None,
        limit: int | None = None,
    ) -> Any:
        params = self._listing_params(sort, limit)
        params["q"] = json.dumps(criteria, sort_keys=True)
        return self._request("GET", f"/entities/{collection}", params=params)

    def create(self, collection: str, data: dict) -> dict:
        return self._request("POST", f"/entities/{collection}", json=data)

    def update(self, collection: str, entity_id: str, data: dict) -> dict:
        return self._request("PUT", f"/entities/{collection}/{entity_id}", json=data)

    def close(self) -> None:
        self._client.close()


def build_entity_store(config) -> EntityStore:
    """Create the adapter selected by ENTITY_STORE_BACKEND."""
    backend = (config.get("ENTITY_STORE_BACKEND") or "sql").lower()
    if backend == "sql":
        return SqlEntityStore()
    if backend == "http":
        return HttpEntityStore(
            config.get("ENTITY_STORE_URL", ""),
            api_key=config.get("ENTITY_STORE_API_KEY"),
            timeout=config.get("ENTITY_STORE_TIMEOUT", 30.0),
        )
    raise EntityStoreError(f"Unknown ENTITY_STORE_BACKEND: {backend}")
