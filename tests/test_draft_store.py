import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from cinemates.domain.pricing.calculator import AddonLine, CakeLine, CouponTerms
from cinemates.wizard.draft import NOT_SELECTED, DraftStore
from cinemates.wizard.session import MemorySessionStorage, RedisSessionStorage

TODAY = date(2024, 6, 15)


class FakeRedisHash:
    """Just the hash commands RedisSessionStorage uses; values come back as bytes"""

    def __init__(self):
        self.hashes = {}

    def hget(self, name, key):
        value = self.hashes.get(name, {}).get(key)
        return value.encode("utf-8") if value is not None else None

    def hset(self, name, key, value):
        self.hashes.setdefault(name, {})[key] = value

    def hdel(self, name, key):
        self.hashes.get(name, {}).pop(key, None)

    def delete(self, name):
        self.hashes.pop(name, None)

    def hkeys(self, name):
        return [k.encode("utf-8") for k in self.hashes.get(name, {})]


@pytest.fixture
def storage():
    return MemorySessionStorage()


@pytest.fixture
def store(storage):
    return DraftStore(storage, today=TODAY)


def truffle(quantity=1, grams=1000):
    return CakeLine(
        name="Chocolate Truffle", cake_id=1, reference_price=Decimal("500"), weight_grams=grams, quantity=quantity
    )


def fog(quantity=1):
    return AddonLine(name="Fog Entry", addon_id=1, unit_price=Decimal("400"), quantity=quantity)


def with_theater(store):
    store.set_location("LOC1", "Koramangala")
    store.set_theater_slot(
        "TH1", "Royal Suite", Decimal("1500"), Decimal("500"),
        selected_date="2024-06-20", selected_slot="10:00 AM - 01:00 PM",
    )


def test_empty_draft_summary_uses_placeholders(store):
    summary = store.summary()
    for label in ("Booking name", "Location", "Theater", "Slot", "Occasion", "Cakes", "Add-ons", "Coupon"):
        assert summary[label] == NOT_SELECTED
    assert summary["Total"] == "₹0.00"


def test_cakes_without_addons(store):
    breakdown = store.set_cakes([truffle(quantity=2)])
    assert breakdown.subtotal == Decimal("2000.00")

    summary = store.summary()
    assert summary["Cakes"] == "Chocolate Truffle 1kg x 2 (₹2,000.00)"
    assert summary["Add-ons"] == NOT_SELECTED
    assert summary["Subtotal"] == "₹2,000.00"
    assert summary["Total"] == "₹2,000.00"


def test_line_item_change_stores_derived_prices_immediately(store, storage):
    with_theater(store)
    assert storage.get("finalPrice") == "1500.00"

    store.set_addons([fog(quantity=2)])
    assert storage.get("subtotal") == "2300.00"
    assert storage.get("finalPrice") == "2300.00"

    store.set_addons([fog(quantity=0)])
    assert storage.get("finalPrice") == "1500.00"
    assert store.load().addon_line_items == {}


def test_coupon_is_stored_with_its_status(store, storage):
    with_theater(store)
    store.set_coupon(
        CouponTerms(
            code="WELCOME10",
            kind="percentage",
            value=Decimal("10"),
            start_date=TODAY - timedelta(days=1),
            end_date=TODAY + timedelta(days=1),
        )
    )
    assert storage.get("couponStatus") == "applied"
    assert storage.get("discountAmount") == "150.00"
    assert storage.get("finalPrice") == "1350.00"
    assert store.summary()["Coupon"] == "WELCOME10 (Coupon WELCOME10 applied)"

    store.clear_coupon()
    assert storage.get("appliedCoupon") is None
    assert storage.get("finalPrice") == "1500.00"


def test_decoration_counts_only_when_requested(store):
    store.set_contact(7, "Asha Rao", "asha@example.com", "9876543210", decoration_needed=True)
    with_theater(store)
    assert store.load().price(TODAY).total == Decimal("2000.00")
    assert store.summary()["Decoration"] == "₹500.00"

    store.set_contact(7, "Asha Rao", "asha@example.com", "9876543210", decoration_needed=False)
    assert store.recompute().total == Decimal("1500.00")
    assert store.summary()["Decoration"] == NOT_SELECTED


def test_changing_theater_drops_the_slot(store):
    with_theater(store)
    store.set_theater_slot("TH2", "Couple Den", Decimal("999"), Decimal("300"))
    draft = store.load()
    assert draft.theater_id == "TH2"
    assert draft.selected_slot is None
    assert draft.selected_date is None
    assert "selected_slot" in draft.missing_for_payment()


def test_changing_location_drops_theater(store):
    with_theater(store)
    store.set_location("LOC2", "Whitefield")
    draft = store.load()
    assert draft.location_id == "LOC2"
    assert draft.theater_id is None
    assert draft.theater_cost is None


def test_changing_occasion_clears_nicknames(store):
    store.set_occasion("Anniversary", 2, booking_nickname="Asha", partner_nickname="Ravi")
    assert store.summary()["Nicknames"] == "Asha & Ravi"

    store.set_occasion("Birthday", 1)
    draft = store.load()
    assert draft.booking_nickname is None
    assert draft.partner_nickname is None
    assert store.summary()["Nicknames"] == NOT_SELECTED


def test_single_name_occasion_never_keeps_a_partner(store):
    store.set_occasion("Birthday", 1, booking_nickname="Asha", partner_nickname="Ravi")
    assert store.load().partner_nickname is None


def test_corrupt_values_are_ignored(storage, store):
    storage.set("customerId", "not-a-number")
    storage.set("cakeLineItems", "{broken json")
    storage.set("addonLineItems", json.dumps(["not", "a", "mapping"]))
    storage.set("theaterCost", "abc")
    storage.set("bookingName", "Asha Rao")

    draft = store.load()
    assert draft.customer_id is None
    assert draft.cake_line_items == []
    assert draft.addon_line_items == {}
    assert draft.theater_cost is None
    assert draft.booking_name == "Asha Rao"
    assert store.summary()["Cakes"] == NOT_SELECTED


def test_stored_final_price_is_not_trusted(storage, store):
    store.set_cakes([truffle()])
    storage.set("finalPrice", "1.00")
    assert store.load().price(TODAY).total == Decimal("1000.00")
    assert store.load().to_snapshot(TODAY)["finalPrice"] == 1000.0


def test_missing_for_payment(store):
    assert store.load().missing_for_payment() == [
        "customer_id", "location_id", "theater_id", "theater_cost", "selected_date", "selected_slot",
    ]
    store.set_contact(7, "Asha Rao", "asha@example.com", "9876543210")
    with_theater(store)
    assert store.load().missing_for_payment() == []


def test_raw_set_stores_strings_as_is_and_structures_as_json(store, storage):
    store.set("note", "hello")
    store.set("extra", {"a": 1})
    assert storage.get("note") == "hello"
    assert json.loads(storage.get("extra")) == {"a": 1}
    store.set("note", None)
    assert store.get("note") is None


def test_clear_destroys_the_draft(store, storage):
    with_theater(store)
    store.clear()
    assert storage.keys() == []


def test_redis_storage_shares_a_draft_between_stores():
    redis = FakeRedisHash()
    first = DraftStore(RedisSessionStorage("abc", client=redis), today=TODAY)
    second = DraftStore(RedisSessionStorage("abc", client=redis), today=TODAY)

    first.set_cakes([truffle()])
    assert second.load().cake_line_items[0].name == "Chocolate Truffle"
    assert "cinemates:draft:abc" in redis.hashes
    assert "cakeLineItems" in second.storage.keys()

    second.clear()
    assert first.load().cake_line_items == []


def test_redis_storage_requires_a_session_id():
    with pytest.raises(ValueError):
        RedisSessionStorage("")
