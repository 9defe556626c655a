import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cinemates.database import Base
from cinemates.domain.slots.repository import SlotRepository
from cinemates.domain.slots.schemas import SlotRequest
from cinemates.domain.slots.service import SlotService
from cinemates.models import BookedSlot, Location, Theater
from cinemates.shared.errors import SlotConflict

from .conftest import SLOTS


def reserve(client, **overrides):
    body = {"theaterId": "TH1", "locationId": "LOC1", "date": "2030-01-15", "slot": SLOTS[0]}
    body.update(overrides)
    return client.post("/slots/check-and-reserve", json=body)


def test_reserve_returns_reservation_id(client, db_session):
    response = reserve(client)
    assert response.status_code == 200
    body = response.json()
    assert body["reservationId"] > 0
    assert body["date"] == "2030-01-15"
    assert body["slot"] == SLOTS[0]
    assert db_session.query(BookedSlot).count() == 1


def test_reservation_records_its_customer(client, db_session, customer_id):
    assert reserve(client, customerId=customer_id).status_code == 200
    assert db_session.query(BookedSlot).one().cust_id == customer_id


def test_reservation_for_unknown_customer_is_rejected(client, db_session):
    response = reserve(client, customerId=999)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "customerId"
    assert db_session.query(BookedSlot).count() == 0


def test_second_reservation_of_same_slot_conflicts(client, db_session):
    assert reserve(client).status_code == 200
    response = reserve(client)
    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_CONFLICT"
    assert db_session.query(BookedSlot).count() == 1


def test_other_slot_or_date_is_independent(client):
    assert reserve(client).status_code == 200
    assert reserve(client, slot=SLOTS[1]).status_code == 200
    assert reserve(client, date="2030-01-16").status_code == 200
    assert reserve(client, theaterId="TH2").status_code == 200


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"date": "15-01-2030"}, "date"),
        ({"date": "2030-02-30"}, "date"),
        ({"theaterId": "T" * 101}, "theaterId"),
        ({"slot": ""}, "slot"),
    ],
)
def test_malformed_input_is_rejected(client, overrides, field):
    response = reserve(client, **overrides)
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["field"] == field


def test_slot_must_be_offered_by_theater(client):
    response = reserve(client, theaterId="TH2", slot=SLOTS[2])
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "slot"


def test_theater_must_belong_to_location(client):
    response = reserve(client, theaterId="TH3")
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "theaterId"


def test_unique_constraint_conflict_maps_to_slot_conflict(client, db_session, monkeypatch):
    # Skip the pre-check so the second insert hits the constraint
    monkeypatch.setattr(SlotRepository, "find_reservation", staticmethod(lambda *args, **kwargs: None))
    assert reserve(client).status_code == 200

    response = reserve(client)
    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_CONFLICT"
    assert db_session.query(BookedSlot).count() == 1

    # The session recovered from the failed insert
    assert reserve(client, slot=SLOTS[1]).status_code == 200


def test_check_endpoint_does_not_insert(client, db_session):
    body = {"theaterId": "TH1", "locationId": "LOC1", "date": "2030-01-15", "slot": SLOTS[0]}
    response = client.post("/slots/check", json=body)
    assert response.status_code == 200
    assert response.json()["available"] is True
    assert db_session.query(BookedSlot).count() == 0

    reserve(client)
    assert client.post("/slots/check", json=body).status_code == 409


def test_booked_slots_for_date(client):
    reserve(client)
    reserve(client, theaterId="TH2", slot=SLOTS[1])
    reserve(client, date="2030-01-16")

    booked = client.get("/slots/booked", params={"date": "2030-01-15"}).json()
    assert {(b["theaterId"], b["slot"]) for b in booked} == {("TH1", SLOTS[0]), ("TH2", SLOTS[1])}

    assert client.get("/slots/booked", params={"date": "2030-01-15", "locationId": "LOC2"}).json() == []
    assert client.get("/slots/booked", params={"date": "tomorrow"}).status_code == 400


def test_concurrent_reservations_of_one_slot_have_exactly_one_winner(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'slots.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        setup.add(Location(loc_id="LOC1", location_name="Koramangala"))
        setup.add(
            Theater(
                theater_id="TH1",
                loc_id="LOC1",
                theater_name="Royal Suite",
                theater_cost=Decimal("1500"),
                decoration_price=Decimal("500"),
                slot_timings=SLOTS,
            )
        )
        setup.commit()

    request = SlotRequest(theaterId="TH1", locationId="LOC1", date="2030-01-15", slot=SLOTS[0])
    attempts = 8
    barrier = threading.Barrier(attempts)

    def attempt():
        with Session() as session:
            barrier.wait()
            try:
                SlotService(session).check_and_reserve(request)
                return "reserved"
            except SlotConflict:
                return "conflict"

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(attempts)))

    assert outcomes.count("reserved") == 1
    assert outcomes.count("conflict") == attempts - 1

    with Session() as check:
        rows = check.query(BookedSlot).all()
        assert len(rows) == 1
        assert rows[0].booked_date == date(2030, 1, 15)
    engine.dispose()
