"""
Pytest fixtures for SolNet backend tests.

Provides test database setup, two shop locations, workers in several roles,
and a test client with bearer-token helpers.
"""

import pytest

from solnet import create_app
from solnet.extensions import db
from solnet.models import Customer, DeviceType, Brand, InventoryItem, Location
from solnet.services import notification_service, sms_gateway
from solnet.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TWILIO_ACCOUNT_SID': None,
        'TWILIO_AUTH_TOKEN': None,
        'TWILIO_FROM_NUMBER': None,
        'TRACKING_CODE_PREFIX': 'SolNet',
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

        notification_service.seed_notification_types()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sent_sms(monkeypatch):
    """Capture outbound SMS instead of calling the provider."""
    outbox = []

    def fake_send(phone, message):
        outbox.append((phone, message))
        return sms_gateway.SendResult(success=True, sid=f"SM{len(outbox):04d}")

    monkeypatch.setattr(sms_gateway, "send_sms", fake_send)
    return outbox


@pytest.fixture(scope='function')
def location_a(db_session):
    """Main shop."""
    location = Location(name="Main Shop", code="MAIN", is_active=True)
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def location_b(db_session):
    """Second branch."""
    location = Location(name="Branch Two", code="BR2", is_active=True)
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def admin_user(db_session, location_a):
    return create_user("admin", "admin@solnet.local", PASSWORD, role="admin", location_id=location_a.id)


@pytest.fixture(scope='function')
def technician_a(db_session, location_a):
    return create_user("tech_a", "tech_a@solnet.local", PASSWORD, role="technician", location_id=location_a.id)


@pytest.fixture(scope='function')
def sales_a(db_session, location_a):
    return create_user("sales_a", "sales_a@solnet.local", PASSWORD, role="sales", location_id=location_a.id)


@pytest.fixture(scope='function')
def front_desk_b(db_session, location_b):
    return create_user("desk_b", "desk_b@solnet.local", PASSWORD, role="customer_service", location_id=location_b.id)


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username, PASSWORD))


@pytest.fixture(scope='function')
def technician_headers(client, technician_a):
    return auth_headers(get_auth_token(client, technician_a.username, PASSWORD))


@pytest.fixture(scope='function')
def sales_headers(client, sales_a):
    return auth_headers(get_auth_token(client, sales_a.username, PASSWORD))


@pytest.fixture(scope='function')
def front_desk_b_headers(client, front_desk_b):
    return auth_headers(get_auth_token(client, front_desk_b.username, PASSWORD))


@pytest.fixture(scope='function')
def customer_a(db_session, location_a):
    customer = Customer(name="Abebe Kebede", phone="0911223344", email="abebe@example.com", location_id=location_a.id)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_b(db_session, location_b):
    customer = Customer(name="Sara Tesfaye", phone="0922334455", location_id=location_b.id)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def laptop_type(db_session):
    device_type = DeviceType(name="Laptop")
    db_session.add(device_type)
    db_session.commit()
    return device_type


@pytest.fixture(scope='function')
def lenovo(db_session):
    brand = Brand(name="Lenovo")
    db_session.add(brand)
    db_session.commit()
    return brand


@pytest.fixture(scope='function')
def ssd_item(db_session, location_a):
    item = InventoryItem(
        location_id=location_a.id,
        name="SSD 512GB",
        sku="SSD-512",
        category="storage",
        purchase_price_cents=3000,
        sale_price_cents=5000,
        quantity=20,
        min_stock_level=5,
        reorder_point=8,
        reorder_quantity=25,
        lead_time_days=7,
    )
    db_session.add(item)
    db_session.commit()
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
