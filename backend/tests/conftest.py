"""
Pytest fixtures for StoreOps backend tests.

Provides the test app (in-memory SQLite), a per-test clean database, an
authenticated console user, and an in-memory entity store for service tests.
"""

from zoneinfo import ZoneInfo

import pytest
from storeops import create_app
from storeops.config import DEFAULT_CHANNEL_STORE_NAMES
from storeops.extensions import db, get_entity_store
from storeops.services.aggregation_service import AggregationSettings
from storeops.services.auth_service import create_user
from storeops.services.entity_store import EntityStoreError
from storeops.services.session_service import create_session


TEST_TIMEZONE = "Europe/Rome"
WEBHOOK_SECRET = "test-webhook-secret"
TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ENTITY_STORE_BACKEND': 'sql',
        'BUSINESS_TIMEZONE': TEST_TIMEZONE,
        'CHANNEL_STORE_NAMES': dict(DEFAULT_CHANNEL_STORE_NAMES),
        'ORDER_ITEM_FETCH_LIMIT': 10000,
        'REVENUE_WEBHOOK_SECRET': WEBHOOK_SECRET,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sql_store(db_session):
    """The app's entity store (SQL backend) on a clean database."""
    return get_entity_store()


@pytest.fixture(scope='function')
def user(db_session):
    """Console user allowed to run the revenue job."""
    return create_user(username="tester", email="tester@storeops.local", password=TEST_PASSWORD)


@pytest.fixture(scope='function')
def token(user):
    """Plaintext bearer token for `user`."""
    _session, plaintext = create_session(user_id=user.id)
    return plaintext


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


@pytest.fixture
def tz():
    return ZoneInfo(TEST_TIMEZONE)


@pytest.fixture
def settings(tz):
    """Aggregation settings matching the test app config."""
    return AggregationSettings(tz=tz, channel_table=dict(DEFAULT_CHANNEL_STORE_NAMES), fetch_limit=10000)


class FakeEntityStore:
    """
    In-memory entity store with the List/Filter/Create/Update interface.

    `wrap` shapes every listing response (bare list by default), `failures`
    maps (operation, collection) to an exception to raise, and writes for
    ids in `failing_store_ids` raise EntityStoreError.
    """

    def __init__(self, stores=None, items=None, wrap=None):
        self.collections = {
            "Store": list(stores or []),
            "OrderItem": list(items or []),
            "DailyStoreRevenue": [],
        }
        self.wrap = wrap or (lambda rows: rows)
        self.failures = {}
        self.failing_store_ids = set()
        self.calls = []
        self._next_id = 0

    def _check(self, operation, collection):
        self.calls.append((operation, collection))
        exc = self.failures.get((operation, collection))
        if exc is not None:
            raise exc

    def list(self, collection, *, sort=None, limit=None):
        self._check("list", collection)
        rows = list(self.collections[collection])
        if sort:
            field = sort.lstrip("-")
            rows.sort(key=lambda row: str(row.get(field) or ""), reverse=sort.startswith("-"))
        if limit is not None:
            rows = rows[:limit]
        return self.wrap(rows)

    def filter(self, collection, criteria, *, sort=None, limit=None):
        self._check("filter", collection)
        rows = [
            row for row in self.collections[collection]
            if all(row.get(key) == value for key, value in criteria.items())
        ]
        return self.wrap(rows)

    def create(self, collection, data):
        self._check("create", collection)
        if data.get("store_id") in self.failing_store_ids:
            raise EntityStoreError(f"create rejected for {data['store_id']}")
        self._next_id += 1
        row = dict(data, id=f"{collection.lower()}-{self._next_id}")
        self.collections[collection].append(row)
        return row

    def update(self, collection, entity_id, data):
        self._check("update", collection)
        if data.get("store_id") in self.failing_store_ids:
            raise EntityStoreError(f"update rejected for {data['store_id']}")
        rows = self.collections[collection]
        for index, row in enumerate(rows):
            if row["id"] == entity_id:
                rows[index] = dict(data, id=entity_id)
                return rows[index]
        raise EntityStoreError(f"{collection} {entity_id} not found")

    def rows(self, collection="DailyStoreRevenue"):
        return self.collections[collection]


@pytest.fixture
def fake_store():
    """Directory with Ticinese, Lanino and Ghost; no items."""
    return FakeEntityStore(stores=[
        {"id": "store-ticinese", "name": "Ticinese"},
        {"id": "store-lanino", "name": "Lanino"},
        {"id": "store-ghost", "name": "Ghost"},
    ])


def order_item(**fields) -> dict:
    """OrderItem wire payload with realistic defaults."""
    item = {
        "modifiedDate": "2024-05-01T12:00:00",
        "order": "ord-1",
        "orderItemName": "Margherita",
        "finalPrice": 10.0,
        "finalPriceWithSessionDiscountsAndSurcharges": 9.0,
        "sourceApp": "pos",
        "sourceType": "counter",
        "moneyTypeName": "cash",
        "saleTypeName": "eat_in",
    }
    item.update(fields)
    return item


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
