# Overview: Flask API routes for daily store revenue; parses input and returns JSON responses.

import traceback

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_webhook_secret
from ..extensions import get_entity_store
from ..services import aggregation_service
from ..services.aggregation_errors import (
    FetchError,
    FilterError,
    StoreNotFoundError,
    ValidationError,
)
from ..services.aggregation_service import AggregationSettings
from ..services.date_window import resolve_target_date
from ..services.entity_store import EntityStoreError, normalize_listing


revenue_bp = Blueprint("revenue", __name__)

WEBHOOK_REQUIRED_FIELDS = ("modifiedDate", "store_id", "store_name")


def _fatal_response(label: str, exc: Exception):
    return jsonify({
        "error": label,
        "details": str(exc),
        "stack": traceback.format_exc(),
    }), 500


@revenue_bp.post("/aggregateDailyStoreRevenue")
@require_auth
def aggregate_daily_store_revenue():
    """
    Aggregate one day of POS order items into DailyStoreRevenue rows.

    Body (optional): {"date": "YYYY-MM-DD"}; defaults to yesterday.
    A store whose row fails to persist shows up as an "error" result; the
    response is still 200 because the pass itself completed.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}

    settings = AggregationSettings.from_config(current_app.config)

    try:
        target_date = resolve_target_date(body.get("date"), tz=settings.tz)
    except ValidationError as exc:
        return jsonify({"error": "Invalid date format", "details": str(exc)}), 400

    current_app.logger.info(
        "Daily revenue aggregation for %s requested by %s",
        target_date.isoformat(),
        g.current_user.username,
    )

    try:
        report = aggregation_service.run_daily_aggregation(
            get_entity_store(),
            target_date=target_date,
            settings=settings,
            log=current_app.logger,
        )
    except FetchError as exc:
        current_app.logger.exception("Failed to fetch aggregation input")
        return _fatal_response("Error fetching aggregation input", exc)
    except FilterError as exc:
        current_app.logger.exception("Failed to filter order items")
        return _fatal_response("Error filtering order items", exc)
    except Exception as exc:
        current_app.logger.exception("Daily revenue aggregation failed")
        return _fatal_response("Error during aggregation", exc)

    return jsonify(report.to_dict()), 200


@revenue_bp.post("/updateDailyRevenueForOrder")
@require_webhook_secret("REVENUE_WEBHOOK_SECRET")
def update_daily_revenue_for_order():
    """
    Recompute one store's row after an order item import.

    Body: {secret, modifiedDate, store_id, store_name} taken from the
    imported OrderItem.
    """
    payload = g.webhook_payload
    missing = [name for name in WEBHOOK_REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        return jsonify({
            "error": f"Missing required fields: {', '.join(missing)}",
            "hint": "Pass these fields from the OrderItem that was just imported",
        }), 400

    not_strings = [name for name in WEBHOOK_REQUIRED_FIELDS if not isinstance(payload[name], str)]
    if not_strings:
        return jsonify({"error": f"Fields must be strings: {', '.join(not_strings)}"}), 400

    settings = AggregationSettings.from_config(current_app.config)

    try:
        result = aggregation_service.recompute_store_day(
            get_entity_store(),
            modified_date=payload["modifiedDate"],
            store_id=payload["store_id"],
            store_name=payload["store_name"],
            settings=settings,
            log=current_app.logger,
        )
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except StoreNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception as exc:
        current_app.logger.exception("Failed to recompute daily store revenue")
        return _fatal_response("Error updating daily store revenue", exc)

    return jsonify(result.to_dict()), 200


@revenue_bp.get("/api/daily-store-revenue")
@require_auth
def list_daily_store_revenue():
    """
    Persisted summaries for one day (default: yesterday).

    Query: date=YYYY-MM-DD, store_id (optional)
    """
    settings = AggregationSettings.from_config(current_app.config)

    try:
        target_date = resolve_target_date(request.args.get("date"), tz=settings.tz)
    except ValidationError as exc:
        return jsonify({"error": "Invalid date format", "details": str(exc)}), 400

    criteria = {"date": target_date.isoformat()}
    store_id = request.args.get("store_id")
    if store_id:
        criteria["store_id"] = store_id

    try:
        rows = normalize_listing(get_entity_store().filter("DailyStoreRevenue", criteria, sort="store_name"))
    except EntityStoreError as exc:
        current_app.logger.exception("Failed to list daily store revenue")
        return jsonify({"error": "Error fetching daily store revenue", "details": str(exc)}), 500

    return jsonify({"date": criteria["date"], "rows": rows}), 200
