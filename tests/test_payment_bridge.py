from decimal import Decimal

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from cinemates.domain.payments.repository import PaymentRepository
from cinemates.domain.pricing.calculator import CakeLine
from cinemates.models import PaymentDetail, SlotBooking
from cinemates.shared.errors import (
    PersistenceFailed,
    PreconditionMissing,
    SignatureMismatch,
    UpstreamUnavailable,
)
from cinemates.wizard.api_client import CineMatesClient
from cinemates.wizard.draft import DraftStore
from cinemates.wizard.payment_bridge import (
    MSG_CANCELLED,
    MSG_INVALID_AMOUNT,
    MSG_MISSING_DETAILS,
    MSG_ORDER_FAILED,
    MSG_PERSISTENCE_FAILED,
    MSG_SCRIPT_FAILED,
    MSG_VERIFICATION_FAILED,
    MSG_VERIFICATION_UNREACHABLE,
    CheckoutWidget,
    PaymentBridge,
    PaymentState,
    WidgetResult,
)
from cinemates.wizard.session import MemorySessionStorage

from .conftest import SLOTS, reserve_for, sign

S = PaymentState


class FakeWidget(CheckoutWidget):
    """Checkout UI double: pays, or is dismissed, with a chosen signing secret"""

    def __init__(self, script_loads=True, dismiss=False, secret="test_secret", payment_id="pay_bridge1"):
        self.script_loads = script_loads
        self.dismiss = dismiss
        self.secret = secret
        self.payment_id = payment_id
        self.opened = []

    def load_script(self):
        return self.script_loads

    def open(self, order):
        self.opened.append(order)
        if self.dismiss:
            return WidgetResult.dismissed()
        return WidgetResult(
            completed=True,
            razorpay_order_id=order["orderId"],
            razorpay_payment_id=self.payment_id,
            razorpay_signature=sign(order["orderId"], self.payment_id, secret=self.secret),
        )


@pytest.fixture
def api(client):
    return CineMatesClient(http_client=client)


@pytest.fixture
def store():
    return DraftStore(MemorySessionStorage())


@pytest.fixture
def ready_store(client, store, customer_id, booking_date):
    """Royal Suite without decoration plus a 500g truffle: 2000.00, slot held"""
    reserve_for(
        client,
        {"theaterId": "TH1", "locationId": "LOC1", "date": booking_date, "slot": SLOTS[1], "customerId": customer_id},
    )
    store.set_contact(customer_id, "Asha Rao", "asha@example.com", "9876543210")
    store.set_location("LOC1", "Koramangala")
    store.set_theater_slot(
        "TH1", "Royal Suite", Decimal("1500"), Decimal("500"), selected_date=booking_date, selected_slot=SLOTS[1]
    )
    store.set_cakes(
        [CakeLine(name="Chocolate Truffle", cake_id=1, reference_price=Decimal("500"), weight_grams=500)]
    )
    return store


def test_successful_payment_confirms_and_clears_draft(api, ready_store, gateway, db_session):
    widget = FakeWidget()
    bridge = PaymentBridge(api, ready_store, widget)
    outcome = bridge.run()

    assert outcome.state == S.CONFIRMED
    assert outcome.payment_id == "pay_bridge1"
    assert outcome.booking_id == db_session.query(SlotBooking).one().id
    assert bridge.history == [
        S.IDLE, S.AWAITING_GATEWAY_SCRIPT, S.ORDER_CREATED, S.AWAITING_USER_ACTION, S.VERIFYING, S.CONFIRMED,
    ]
    assert gateway.orders[0]["amount"] == 200000
    assert widget.opened[0]["keyId"] == "rzp_test_key"
    assert ready_store.storage.keys() == []


def test_missing_details_fail_before_anything_is_loaded(api, store, gateway):
    widget = FakeWidget()
    bridge = PaymentBridge(api, store, widget)
    outcome = bridge.run()

    assert outcome.state == S.FAILED
    assert outcome.message == MSG_MISSING_DETAILS
    assert isinstance(bridge.error, PreconditionMissing)
    assert bridge.error.step == "contact"
    assert bridge.history == [S.IDLE, S.AWAITING_GATEWAY_SCRIPT, S.FAILED]
    assert gateway.orders == []


def test_script_failure(api, ready_store, gateway):
    outcome = PaymentBridge(api, ready_store, FakeWidget(script_loads=False)).run()
    assert outcome.message == MSG_SCRIPT_FAILED
    assert gateway.orders == []


def test_zero_total_is_not_charged(api, store, customer_id, booking_date, gateway):
    store.set_contact(customer_id, "Asha Rao", "asha@example.com", "9876543210")
    store.set_location("LOC2", "Whitefield")
    store.set_theater_slot(
        "TH3", "Free Preview", Decimal("0"), Decimal("0"), selected_date=booking_date, selected_slot=SLOTS[0]
    )
    outcome = PaymentBridge(api, store, FakeWidget()).run()
    assert outcome.message == MSG_INVALID_AMOUNT
    assert gateway.orders == []


def test_order_creation_failure(api, ready_store, gateway):
    gateway.fail = True
    bridge = PaymentBridge(api, ready_store, FakeWidget())
    outcome = bridge.run()
    assert outcome.message == MSG_ORDER_FAILED
    assert isinstance(bridge.error, UpstreamUnavailable)


def test_dismissed_widget_keeps_the_draft(api, ready_store, db_session):
    bridge = PaymentBridge(api, ready_store, FakeWidget(dismiss=True))
    outcome = bridge.run()

    assert outcome.message == MSG_CANCELLED
    assert outcome.order_id == "order_test1"
    assert bridge.history[-2:] == [S.AWAITING_USER_ACTION, S.FAILED]
    assert ready_store.load().theater_id == "TH1"
    assert db_session.query(PaymentDetail).count() == 0


def test_forged_signature_fails_verification(api, ready_store, db_session):
    bridge = PaymentBridge(api, ready_store, FakeWidget(secret="not_the_key_secret"))
    outcome = bridge.run()

    assert outcome.message == MSG_VERIFICATION_FAILED
    assert isinstance(bridge.error, SignatureMismatch)
    assert bridge.history[-2:] == [S.VERIFYING, S.FAILED]
    assert db_session.query(PaymentDetail).count() == 0
    assert ready_store.load().customer_id is not None


def test_persistence_failure_has_its_own_message(api, ready_store, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("INSERT INTO payment_details", {}, Exception("disk I/O error"))

    monkeypatch.setattr(PaymentRepository, "finalize_booking", staticmethod(broken))
    bridge = PaymentBridge(api, ready_store, FakeWidget())
    outcome = bridge.run()

    assert outcome.message == MSG_PERSISTENCE_FAILED
    assert isinstance(bridge.error, PersistenceFailed)


def test_unreachable_verification_service(api, ready_store, monkeypatch):
    real_request = api.http.request

    def flaky(method, url, **kwargs):
        if url == "/payment-verify":
            raise httpx.ConnectError("connection refused")
        return real_request(method, url, **kwargs)

    monkeypatch.setattr(api.http, "request", flaky)
    bridge = PaymentBridge(api, ready_store, FakeWidget())
    outcome = bridge.run()

    assert outcome.message == MSG_VERIFICATION_UNREACHABLE
    assert isinstance(bridge.error, UpstreamUnavailable)


def test_bridge_runs_once(api, ready_store):
    bridge = PaymentBridge(api, ready_store, FakeWidget())
    bridge.run()
    with pytest.raises(RuntimeError):
        bridge.run()
