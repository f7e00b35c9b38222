from __future__ import annotations

import uuid

from ..extensions import db
from storeops.time_utils import to_utc_z


def _new_entity_id() -> str:
    return uuid.uuid4().hex


class EntityPayloadMixin:
    """
    Maps camelCase wire fields of the entity-storage collections onto
    snake_case columns.

    WIRE_FIELDS is ordered wire name -> attribute name and must include "id".
    """
    WIRE_FIELDS: dict[str, str] = {}

    @classmethod
    def column_for(cls, wire_name: str):
        attr = cls.WIRE_FIELDS.get(wire_name)
        if attr is None:
            raise KeyError(wire_name)
        return getattr(cls, attr)

    def apply_payload(self, data: dict, *, replace: bool = False) -> None:
        """
        Copy known wire fields from `data` onto the row.

        With replace=True, fields absent from `data` are cleared (full replace).
        """
        for wire_name, attr in self.WIRE_FIELDS.items():
            if wire_name == "id":
                continue
            if wire_name in data:
                setattr(self, attr, data[wire_name])
            elif replace:
                setattr(self, attr, None)

    def to_dict(self) -> dict:
        payload = {wire_name: getattr(self, attr) for wire_name, attr in self.WIRE_FIELDS.items()}
        payload["created_date"] = to_utc_z(self.created_at)
        return payload


class Store(EntityPayloadMixin, db.Model):
    """
    Physical store. Names are unique after trim + lowercase; the revenue
    resolver matches free-text store names against them.
    """
    __tablename__ = "stores"

    id = db.Column(db.String(64), primary_key=True, default=_new_entity_id)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    WIRE_FIELDS = {
        "id": "id",
        "name": "name",
    }

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"


class OrderItem(EntityPayloadMixin, db.Model):
    """
    Raw POS order line as written by the ingestion pipeline.

    Values are kept exactly as received: modified_date is the POS clock
    string and store_id may reference a stale store, so neither is typed
    or constrained here.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_modified_date", "modified_date"),
    )

    id = db.Column(db.String(64), primary_key=True, default=_new_entity_id)
    modified_date = db.Column(db.String(64), nullable=True)

    store_id = db.Column(db.String(64), nullable=True, index=True)
    store_name = db.Column(db.String(120), nullable=True)
    printed_order_item_channel = db.Column(db.String(64), nullable=True)

    order_key = db.Column(db.String(128), nullable=True)
    order_item_name = db.Column(db.String(255), nullable=True)

    final_price = db.Column(db.Float, nullable=True)
    final_price_with_discounts = db.Column(db.Float, nullable=True)

    source_app = db.Column(db.String(64), nullable=True)
    source_type = db.Column(db.String(64), nullable=True)
    money_type_name = db.Column(db.String(64), nullable=True)
    sale_type_name = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    WIRE_FIELDS = {
        "id": "id",
        "modifiedDate": "modified_date",
        "store_id": "store_id",
        "store_name": "store_name",
        "printedOrderItemChannel": "printed_order_item_channel",
        "order": "order_key",
        "orderItemName": "order_item_name",
        "finalPrice": "final_price",
        "finalPriceWithSessionDiscountsAndSurcharges": "final_price_with_discounts",
        "sourceApp": "source_app",
        "sourceType": "source_type",
        "moneyTypeName": "money_type_name",
        "saleTypeName": "sale_type_name",
    }

    def __repr__(self) -> str:
        return f"<OrderItem id={self.id} modifiedDate={self.modified_date!r}>"


class DailyStoreRevenue(EntityPayloadMixin, db.Model):
    """
    One revenue summary per (store_id, date), fully replaced on every run.

    Breakdowns map category value -> {finalPriceWithSessionDiscountsAndSurcharges, finalPrice}.
    """
    __tablename__ = "daily_store_revenue"
    __table_args__ = (
        db.UniqueConstraint("store_id", "date", name="uq_daily_store_revenue_store_date"),
    )

    id = db.Column(db.String(64), primary_key=True, default=_new_entity_id)
    store_id = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    store_name = db.Column(db.String(120), nullable=True)

    total_final_price_with_discounts = db.Column(db.Float, nullable=False, default=0.0)
    total_final_price = db.Column(db.Float, nullable=False, default=0.0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_items = db.Column(db.Integer, nullable=False, default=0)

    breakdown_by_source_app = db.Column(db.JSON, nullable=True)
    breakdown_by_source_type = db.Column(db.JSON, nullable=True)
    breakdown_by_money_type_name = db.Column(db.JSON, nullable=True)
    breakdown_by_sale_type_name = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    WIRE_FIELDS = {
        "id": "id",
        "store_id": "store_id",
        "date": "date",
        "store_name": "store_name",
        "total_finalPriceWithSessionDiscountsAndSurcharges": "total_final_price_with_discounts",
        "total_finalPrice": "total_final_price",
        "total_orders": "total_orders",
        "total_items": "total_items",
        "breakdown_by_sourceApp": "breakdown_by_source_app",
        "breakdown_by_sourceType": "breakdown_by_source_type",
        "breakdown_by_moneyTypeName": "breakdown_by_money_type_name",
        "breakdown_by_saleTypeName": "breakdown_by_sale_type_name",
    }

    def __repr__(self) -> str:
        return f"<DailyStoreRevenue store_id={self.store_id} date={self.date}>"

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["updated_date"] = to_utc_z(self.updated_at)
        return payload
