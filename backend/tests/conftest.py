"""
Pytest fixtures for tillflow backend tests.

Provides test database setup, shop/staff/order factories, the SQL
persistence collaborator, a session registry and a fake timer scheduler.
"""

import pytest

from tillflow import create_app
from tillflow.extensions import db
from tillflow.models import Order, OrderItem, Shop, ShopStaff
from tillflow.services.persistence_service import SqlPersistence
from tillflow.services.session_registry import IdlePolicy, SessionRegistry
from tillflow.time_utils import utcnow


TEST_PIN = "4821"


def _register_guarded_routes(app):
    """Minimal routes guarded by the request decorators."""
    from flask import g, jsonify

    from tillflow.decorators import require_action, require_staff_session

    @app.route("/guarded/session")
    @require_staff_session
    def guarded_session():
        return jsonify({"shop_id": g.shop_id, "staff_id": g.staff_session.staff_id})

    @app.route("/guarded/void")
    @require_staff_session
    @require_action("sales.void")
    def guarded_void():
        return jsonify({"ok": True})


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PIN_HASH_ROUNDS': 4,
    })
    _register_guarded_routes(app)

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
        app.extensions.pop("tillflow_session_registry", None)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def persistence(db_session):
    return SqlPersistence()


@pytest.fixture(scope='function')
def registry(persistence):
    return SessionRegistry(persistence, IdlePolicy(timeout_minutes=15))


@pytest.fixture(scope='function')
def make_shop(db_session):
    def _make(name="Corner Bistro", business_type="table_order", idle_timeout_minutes=None):
        shop = Shop(name=name, business_type=business_type, idle_timeout_minutes=idle_timeout_minutes)
        db_session.add(shop)
        db_session.commit()
        return shop
    return _make


@pytest.fixture(scope='function')
def shop(make_shop):
    """Table-order shop."""
    return make_shop()


@pytest.fixture(scope='function')
def checkout_shop(make_shop):
    """Quick-checkout shop."""
    return make_shop(name="Corner Kiosk", business_type="quick_checkout")


@pytest.fixture(scope='function')
def make_staff(db_session):
    from tillflow.services.credential_service import hash_pin

    def _make(shop, role="waiter", name=None, secondary_role=None, pin=TEST_PIN,
              accepted=True, overrides=None, authorization_status=None):
        staff = ShopStaff(
            shop_id=shop.id,
            name=name or f"{role.title()} {shop.id}",
            role=role,
            secondary_role=secondary_role,
            permission_overrides=dict(overrides or {}),
            pin_hash=hash_pin(pin) if pin else None,
            accepted_at=utcnow() if accepted else None,
            authorization_status=authorization_status,
        )
        db_session.add(staff)
        db_session.commit()
        return staff
    return _make


@pytest.fixture(scope='function')
def make_order(db_session):
    def _make(shop, status="new", items=(("Margherita", 1, 1150),)):
        order = Order(shop_id=shop.id, status=status)
        db_session.add(order)
        db_session.flush()
        total = 0
        for name, quantity, price in items:
            db_session.add(OrderItem(order_id=order.id, name=name, quantity=quantity, unit_price_cents=price))
            total += quantity * price
        order.total_cents = total
        db_session.commit()
        return order
    return _make


@pytest.fixture(scope='function')
def admit(registry):
    """Clock a staff member in and return their ActorSession."""
    def _admit(staff, device_id="terminal-1"):
        return registry.admit(staff.shop_id, staff.id, device_id).session
    return _admit


class FakeScheduler:
    """Deterministic scheduler: time only moves when advance() is called."""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._seq = 0

    def call_later(self, delay, callback):
        self._seq += 1
        handle = {"due": self.now + delay, "seq": self._seq, "callback": callback, "cancelled": False}
        self._timers.append(handle)
        return handle

    def cancel(self, handle):
        handle["cancelled"] = True

    @property
    def pending(self):
        return [t for t in self._timers if not t["cancelled"]]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self._timers if not t["cancelled"] and t["due"] <= target),
                key=lambda t: (t["due"], t["seq"]),
            )
            if not due:
                break
            timer = due[0]
            self._timers.remove(timer)
            self.now = timer["due"]
            timer["callback"]()
        self.now = target


@pytest.fixture
def scheduler():
    return FakeScheduler()
