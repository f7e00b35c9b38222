"""
Aggregation input tests: store directory, order item window, day filter,
business clock.
"""

import time
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from conftest import FakeEntityStore, order_item
from storeops.services.aggregation_errors import FetchError, FilterError, ValidationError
from storeops.services.aggregation_service import AggregationSettings
from storeops.services.date_window import filter_by_day, resolve_target_date
from storeops.services.entity_store import EntityStoreError
from storeops.services.order_item_service import fetch_recent_order_items
from storeops.services.store_directory import build_indices, load_stores, normalize_store_name
from storeops.time_utils import LocalTimezone, business_timezone, parse_local_timestamp


ROME = ZoneInfo("Europe/Rome")
CHANNELS = {"lct_21684": "Ticinese", "lct_21350": "Lanino"}


# =============================================================================
# STORE DIRECTORY
# =============================================================================


class TestStoreDirectory:

    def test_load_stores_from_envelope(self, fake_store):
        fake_store.wrap = lambda rows: {"items": rows}
        stores = load_stores(fake_store)
        assert [s["name"] for s in stores] == ["Ticinese", "Lanino", "Ghost"]

    def test_unrecognized_shape_is_fatal(self, fake_store):
        fake_store.wrap = lambda rows: {"stores": rows}
        with pytest.raises(FetchError):
            load_stores(fake_store)

    def test_storage_failure_is_fatal(self, fake_store):
        fake_store.failures[("list", "Store")] = EntityStoreError("timeout")
        with pytest.raises(FetchError, match="timeout"):
            load_stores(fake_store)

    def test_store_without_id_is_fatal(self):
        with pytest.raises(FetchError):
            load_stores(FakeEntityStore(stores=[{"name": "Nameless"}]))

    def test_normalize_store_name(self):
        assert normalize_store_name("  TiCiNeSe ") == "ticinese"
        assert normalize_store_name(None) == ""

    def test_indices(self):
        stores = [
            {"id": "s1", "name": " Ticinese "},
            {"id": "s2", "name": "LANINO"},
            {"id": "s3", "name": ""},
        ]

        indices = build_indices(stores, CHANNELS)

        assert set(indices.by_id) == {"s1", "s2", "s3"}
        assert set(indices.by_normalized_name) == {"ticinese", "lanino"}
        assert indices.by_channel_code["lct_21684"]["id"] == "s1"
        assert indices.by_channel_code["lct_21350"]["id"] == "s2"

    def test_channel_code_for_absent_store_not_indexed(self):
        indices = build_indices([{"id": "s1", "name": "Ticinese"}], CHANNELS)
        assert "lct_21350" not in indices.by_channel_code

    def test_injected_channel_table(self):
        indices = build_indices([{"id": "s9", "name": "Navigli"}], {"lct_99999": "navigli"})
        assert indices.by_channel_code == {"lct_99999": {"id": "s9", "name": "Navigli"}}


# =============================================================================
# ORDER ITEM WINDOW
# =============================================================================


class TestFetchRecentOrderItems:

    def test_newest_first_and_bounded(self):
        store = FakeEntityStore(items=[
            order_item(id="old", modifiedDate="2024-04-01T10:00:00"),
            order_item(id="new", modifiedDate="2024-05-02T10:00:00"),
            order_item(id="mid", modifiedDate="2024-05-01T10:00:00"),
        ])

        fetched = fetch_recent_order_items(store, limit=2)

        assert [item["id"] for item in fetched.items] == ["new", "mid"]
        assert fetched.reached_limit is True

    def test_below_limit(self):
        fetched = fetch_recent_order_items(FakeEntityStore(items=[order_item()]), limit=10)
        assert fetched.reached_limit is False

    def test_results_envelope(self):
        store = FakeEntityStore(items=[order_item()], wrap=lambda rows: {"results": rows})
        assert len(fetch_recent_order_items(store).items) == 1

    def test_non_object_item_is_fatal(self):
        store = FakeEntityStore(items=[order_item()], wrap=lambda rows: rows + ["garbage"])
        with pytest.raises(FetchError):
            fetch_recent_order_items(store)

    def test_bad_shape_is_fatal(self):
        store = FakeEntityStore(wrap=lambda rows: {"count": 0})
        with pytest.raises(FetchError):
            fetch_recent_order_items(store)

    def test_non_positive_limit(self):
        with pytest.raises(FetchError):
            fetch_recent_order_items(FakeEntityStore(), limit=0)


# =============================================================================
# TARGET DATE
# =============================================================================


class TestResolveTargetDate:

    def test_default_is_yesterday(self):
        now = datetime(2024, 5, 2, 0, 30, tzinfo=ROME)
        assert resolve_target_date(None, tz=ROME, now=now) == date(2024, 5, 1)

    def test_blank_is_yesterday(self):
        now = datetime(2024, 3, 1, 9, 0, tzinfo=ROME)
        assert resolve_target_date("  ", tz=ROME, now=now) == date(2024, 2, 29)

    def test_explicit_date(self):
        assert resolve_target_date("2024-05-01", tz=ROME) == date(2024, 5, 1)

    def test_iso_datetime_keeps_calendar_date(self):
        assert resolve_target_date("2024-05-01T23:00:00", tz=ROME) == date(2024, 5, 1)

    @pytest.mark.parametrize("value", ["01/05/2024", "2024-13-01", "yesterday", 20240501])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            resolve_target_date(value, tz=ROME)


# =============================================================================
# DAY FILTER
# =============================================================================


class TestFilterByDay:

    DAY = date(2024, 5, 1)

    def test_inclusive_bounds(self):
        items = [
            order_item(id="start", modifiedDate="2024-05-01T00:00:00"),
            order_item(id="end", modifiedDate="2024-05-01T23:59:59.999"),
            order_item(id="before", modifiedDate="2024-04-30T23:59:59"),
            order_item(id="next", modifiedDate="2024-05-02T00:00:00"),
        ]

        window = filter_by_day(items, self.DAY, ROME)

        assert [item["id"] for item in window.items] == ["start", "end"]
        assert window.skipped_timestamps == 0

    def test_utc_timestamps_converted_to_business_day(self):
        items = [
            # 22:30Z on Apr 30 is 00:30 on May 1 in Rome (CEST)
            order_item(id="early", modifiedDate="2024-04-30T22:30:00Z"),
            # 22:30Z on May 1 is already May 2 in Rome
            order_item(id="late", modifiedDate="2024-05-01T22:30:00Z"),
            order_item(id="offset", modifiedDate="2024-05-01T09:00:00+02:00"),
        ]

        window = filter_by_day(items, self.DAY, ROME)

        assert [item["id"] for item in window.items] == ["early", "offset"]

    def test_missing_and_unparseable_are_skipped_and_counted(self):
        items = [
            order_item(id="ok"),
            order_item(id="missing", modifiedDate=None),
            order_item(id="blank", modifiedDate=""),
            order_item(id="garbage", modifiedDate="not a date"),
        ]

        window = filter_by_day(items, self.DAY, ROME)

        assert [item["id"] for item in window.items] == ["ok"]
        assert window.skipped_timestamps == 3

    def test_non_string_timestamp_is_fatal(self):
        with pytest.raises(FilterError):
            filter_by_day([order_item(modifiedDate=1714557600)], self.DAY, ROME)

    def test_non_object_item_is_fatal(self):
        with pytest.raises(FilterError):
            filter_by_day([order_item(), "garbage"], self.DAY, ROME)

    def test_fraction_of_any_length(self):
        items = [
            order_item(id="tenths", modifiedDate="2024-05-01T10:15:00.5"),
            order_item(id="nanos", modifiedDate="2024-05-01T10:15:00.1234567Z"),
        ]

        window = filter_by_day(items, self.DAY, ROME)

        assert [item["id"] for item in window.items] == ["tenths", "nanos"]
        assert window.skipped_timestamps == 0


class TestParseLocalTimestamp:

    def test_short_fraction_is_padded(self):
        parsed = parse_local_timestamp("2024-05-01T10:15:00.5", ROME)
        assert parsed == datetime(2024, 5, 1, 10, 15, 0, 500000, tzinfo=ROME)

    def test_long_fraction_is_truncated(self):
        parsed = parse_local_timestamp("2024-05-01T08:15:00.1234567Z", ROME)
        assert parsed == datetime(2024, 5, 1, 10, 15, 0, 123456, tzinfo=ROME)

    def test_blank_is_none(self):
        assert parse_local_timestamp("  ", ROME) is None


# =============================================================================
# PROCESS-LOCAL BUSINESS CLOCK
# =============================================================================


# POSIX rule for Europe/Rome; needs no zoneinfo files on the host
ROME_POSIX_TZ = "CET-1CEST,M3.5.0,M10.5.0/3"


@pytest.fixture
def rome_process_clock(monkeypatch):
    """Process TZ switched to Rome time for one test, then restored."""
    monkeypatch.setenv("TZ", ROME_POSIX_TZ)
    time.tzset()
    yield business_timezone(None)
    monkeypatch.undo()
    time.tzset()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="time.tzset is POSIX-only")
class TestLocalBusinessClock:
    """
    BUSINESS_TIMEZONE unset: days follow the server clock, including its
    DST switches, whatever the season the job runs in.
    """

    def test_offset_follows_the_date(self, rome_process_clock):
        tz = rome_process_clock
        assert tz.utcoffset(datetime(2024, 1, 15, 12, 0)) == timedelta(hours=1)
        assert tz.utcoffset(datetime(2024, 7, 15, 12, 0)) == timedelta(hours=2)

    def test_winter_day_bounds(self, rome_process_clock):
        items = [
            # 23:30 on Jan 14 in Rome (CET)
            order_item(id="before", modifiedDate="2024-01-14T22:30:00Z"),
            # 00:30 on Jan 15 in Rome
            order_item(id="after", modifiedDate="2024-01-14T23:30:00Z"),
            order_item(id="naive", modifiedDate="2024-01-15T00:10:00"),
        ]

        window = filter_by_day(items, date(2024, 1, 15), rome_process_clock)

        assert [item["id"] for item in window.items] == ["after", "naive"]

    def test_summer_day_bounds(self, rome_process_clock):
        items = [
            # 23:30 on Jul 14 in Rome (CEST)
            order_item(id="before", modifiedDate="2024-07-14T21:30:00Z"),
            # 00:30 on Jul 15 in Rome
            order_item(id="after", modifiedDate="2024-07-14T22:30:00Z"),
        ]

        window = filter_by_day(items, date(2024, 7, 15), rome_process_clock)

        assert [item["id"] for item in window.items] == ["after"]

    def test_settings_without_timezone_use_local_clock(self, rome_process_clock):
        settings = AggregationSettings.from_config({})
        assert isinstance(settings.tz, LocalTimezone)
        assert settings.tz.utcoffset(datetime(2024, 1, 15)) == timedelta(hours=1)
