import os

# Must be set before cinemates is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "test_secret"

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cinemates.database import Base, SessionLocal, engine
from cinemates.domain.payments.gateway import get_payment_gateway
from cinemates.domain.payments.signature import compute_payment_signature, verify_payment_signature
from cinemates.main import app
from cinemates.models import Addon, Cake, Coupon, Location, Occasion, Theater
from cinemates.shared.errors import UpstreamUnavailable

TEST_SECRET = "test_secret"

SLOTS = ["10:00 AM - 01:00 PM", "01:30 PM - 04:30 PM", "05:00 PM - 08:00 PM"]


class FakeGateway:
    """Stands in for Razorpay: hands out sequential order ids"""

    def __init__(self, key_id="rzp_test_key", key_secret=TEST_SECRET):
        self.key_id = key_id
        self.key_secret = key_secret
        self.orders = []
        self.fail = False

    def create_order(self, amount_minor_units, currency, receipt, notes=None):
        if self.fail:
            raise UpstreamUnavailable("Failed to initiate payment. Please try again later.")
        order = {
            "id": f"order_test{len(self.orders) + 1}",
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }
        self.orders.append(order)
        return order

    def verify_signature(self, order_id, payment_id, signature):
        return verify_payment_signature(self.key_secret, order_id, payment_id, signature)


def sign(order_id, payment_id, secret=TEST_SECRET):
    return compute_payment_signature(secret, order_id, payment_id)


def reserve_for(client, draft):
    """Hold the draft's slot for its customer, as the theater step does"""
    response = client.post(
        "/slots/check-and-reserve",
        json={
            "theaterId": draft["theaterId"],
            "locationId": draft["locationId"],
            "date": draft["date"],
            "slot": draft["slot"],
            "customerId": draft["customerId"],
        },
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def catalog(db_session, today):
    """A small catalog: two locations, three theaters, a menu and four coupons"""
    db_session.add_all(
        [
            Location(loc_id="LOC1", location_name="Koramangala", parking_available="Y", new_flag="N"),
            Location(loc_id="LOC2", location_name="Whitefield", new_flag="Y"),
            Location(loc_id="LOC3", location_name="Closed Branch", public_flag="N"),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Theater(
                theater_id="TH1",
                loc_id="LOC1",
                theater_name="Royal Suite",
                theater_cost=Decimal("1500.00"),
                decoration_price=Decimal("500.00"),
                per_persons=4,
                max_persons=10,
                slot_timings=SLOTS,
            ),
            Theater(
                theater_id="TH2",
                loc_id="LOC1",
                theater_name="Couple Den",
                theater_cost=Decimal("999.00"),
                decoration_price=Decimal("300.00"),
                slot_timings=SLOTS[:2],
            ),
            Theater(
                theater_id="TH3",
                loc_id="LOC2",
                theater_name="Free Preview",
                theater_cost=Decimal("0"),
                decoration_price=Decimal("0"),
                slot_timings=SLOTS[:1],
            ),
            Occasion(occasion_id=1, occasion_name="Birthday", no_of_names="1"),
            Occasion(occasion_id=2, occasion_name="Anniversary", no_of_names="2"),
            Occasion(occasion_id=3, occasion_name="Farewell", no_of_names="x"),
            Cake(
                cake_id=1,
                cake_name="Chocolate Truffle",
                egg_eggless="egg",
                reference_price=Decimal("500.00"),
                weight_tiers=["500g", "1kg", "2kg"],
            ),
            Cake(
                cake_id=2,
                cake_name="Black Forest",
                egg_eggless="Eggless",
                reference_price=Decimal("450.00"),
                weight_tiers=["500 grams", "1.5 Kg"],
            ),
            Addon(addon_id=1, addon_name="Fog Entry", addon_price=Decimal("400.00"), category_name="Effects"),
            Addon(addon_id=2, addon_name="Rose Bouquet", addon_price=Decimal("350.00"), category_name="Flowers"),
            Coupon(
                coupon_code_name="WELCOME10",
                coupon_type="NEW_USER",
                coupon_discount=Decimal("10"),
                coupon_start_date=today - timedelta(days=10),
                coupon_end_date=today + timedelta(days=10),
            ),
            Coupon(
                coupon_code_name="FLAT500",
                coupon_type="FESTIVE_OFFERS",
                coupon_discount=Decimal("0"),
                coupon_amount=Decimal("500"),
                coupon_start_date=today,
                coupon_end_date=today,
            ),
            Coupon(
                coupon_code_name="EXPIRED20",
                coupon_type="FESTIVE_OFFERS",
                coupon_discount=Decimal("20"),
                coupon_start_date=today - timedelta(days=30),
                coupon_end_date=today - timedelta(days=1),
            ),
            Coupon(
                coupon_code_name="SOON15",
                coupon_type="FESTIVE_OFFERS",
                coupon_discount=Decimal("15"),
                coupon_start_date=today + timedelta(days=1),
                coupon_end_date=today + timedelta(days=5),
            ),
        ]
    )
    db_session.commit()
    return db_session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(catalog, gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer_id(client):
    response = client.post(
        "/bookings",
        json={
            "bookingName": "Asha Rao",
            "email": "Asha@Example.com",
            "phone": "+91 98765 43210",
            "numberOfPersons": 4,
            "decorationNeeded": True,
        },
    )
    assert response.status_code == 200
    return response.json()["customerId"]


@pytest.fixture
def booking_date(today):
    return (today + timedelta(days=3)).isoformat()


@pytest.fixture
def draft_snapshot(customer_id, booking_date):
    """Royal Suite with decoration, a 1kg truffle and two fog entries: 3800.00"""
    return {
        "customerId": customer_id,
        "locationId": "LOC1",
        "theaterId": "TH1",
        "date": booking_date,
        "slot": SLOTS[0],
        "occasionName": "Birthday",
        "bookingNickname": "Asha",
        "bookingName": "Asha Rao",
        "decorationNeeded": True,
        "cakes": [{"cakeId": 1, "weightGrams": 1000, "quantity": 1}],
        "addons": [{"addonId": 1, "quantity": 2}],
    }
