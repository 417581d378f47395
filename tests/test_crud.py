import asyncio
import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.orm import Session

from shareit import crud, models
from shareit.config import settings
from shareit.outbox_poller import relay_pending_events
from shareit.repositories import BookingQuery

NOW = datetime(2026, 7, 1, 12, 0)


def outbox_payloads(db_session):
    return [json.loads(e.payload) for e in db_session.query(models.OutboxEvent).order_by(models.OutboxEvent.id)]


# --- Bookings ---

def test_add_booking_writes_outbox_event(db_session, make_user, make_item):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    item = make_item(owner)
    repo = crud.SqlBookingRepository(db_session)

    booking = repo.add(models.Booking(item_id=item.id, booker_id=booker.id, start=NOW, end=NOW + timedelta(days=1),
                                      status=models.BookingStatus.WAITING))

    assert booking.id is not None
    event = db_session.query(models.OutboxEvent).one()
    assert event.status == "PENDING"
    assert event.topic == settings.KAFKA_BOOKING_TOPIC
    assert json.loads(event.payload) == {
        "event": "BOOKING_CREATED",
        "booking_id": booking.id,
        "item_id": item.id,
        "booker_id": booker.id,
        "status": "WAITING",
    }


def test_transition_status_is_conditional(db_session, make_user, make_item, make_booking):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    booking = make_booking(make_item(owner), booker, NOW, NOW + timedelta(days=1))
    repo = crud.SqlBookingRepository(db_session)

    assert repo.transition_status(booking, models.BookingStatus.WAITING, models.BookingStatus.REJECTED) is True
    assert booking.status == models.BookingStatus.REJECTED

    # A second decision finds the row no longer WAITING
    assert repo.transition_status(booking, models.BookingStatus.WAITING, models.BookingStatus.APPROVED) is False
    assert repo.get(booking.id).status == models.BookingStatus.REJECTED

    assert [p["event"] for p in outbox_payloads(db_session)] == ["BOOKING_REJECTED"]


def test_find_by_booker_and_owner_apply_query(db_session, make_user, make_item, make_booking):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    other = make_user("Other", "other@example.com")
    item = make_item(owner)
    someone_elses_item = make_item(other, name="Canoe", description="Red canoe")

    past = make_booking(item, booker, NOW - timedelta(days=4), NOW - timedelta(days=2),
                        models.BookingStatus.APPROVED)
    current = make_booking(item, booker, NOW - timedelta(days=1), NOW + timedelta(days=1))
    future = make_booking(item, booker, NOW + timedelta(days=2), NOW + timedelta(days=3),
                          models.BookingStatus.REJECTED)
    make_booking(someone_elses_item, booker, NOW + timedelta(days=5), NOW + timedelta(days=6))

    repo = crud.SqlBookingRepository(db_session)

    by_owner = repo.find_by_owner(owner.id, BookingQuery())
    assert [b.id for b in by_owner] == [future.id, current.id, past.id]

    assert len(repo.find_by_booker(booker.id, BookingQuery())) == 4
    assert repo.find_by_booker(booker.id, BookingQuery(start_before=NOW, end_after=NOW)) == [current]
    assert repo.find_by_owner(owner.id, BookingQuery(end_before=NOW)) == [past]
    assert [b.id for b in repo.find_by_owner(owner.id, BookingQuery(start_after=NOW))] == [future.id]
    assert repo.find_by_owner(owner.id, BookingQuery(status=models.BookingStatus.WAITING)) == [current]
    assert repo.find_by_owner(other.id, BookingQuery(status=models.BookingStatus.REJECTED)) == []


def test_last_next_and_completed(db_session, make_user, make_item, make_booking):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    item = make_item(owner)
    approved = models.BookingStatus.APPROVED

    older = make_booking(item, booker, NOW - timedelta(days=9), NOW - timedelta(days=8), approved)
    latest = make_booking(item, booker, NOW - timedelta(days=2), NOW - timedelta(days=1), approved)
    make_booking(item, booker, NOW + timedelta(days=1), NOW + timedelta(days=2))  # waiting
    nearest = make_booking(item, booker, NOW + timedelta(days=3), NOW + timedelta(days=4), approved)
    make_booking(item, booker, NOW + timedelta(days=7), NOW + timedelta(days=8), approved)

    repo = crud.SqlBookingRepository(db_session)
    assert repo.find_last_approved(item.id, NOW).id == latest.id
    assert repo.find_next_approved(item.id, NOW).id == nearest.id
    assert repo.find_last_approved(item.id, older.start) is None

    assert repo.exists_completed(item.id, booker.id, NOW) is True
    assert repo.exists_completed(item.id, booker.id, older.end) is False
    assert repo.exists_completed(item.id, owner.id, NOW) is False


def test_exists_completed_queries_once():
    mock_db = MagicMock(spec=Session)
    mock_db.query.return_value.filter.return_value.first.return_value = None

    assert crud.SqlBookingRepository(mock_db).exists_completed(1, 2, NOW) is False
    mock_db.query.return_value.filter.return_value.first.assert_called_once()


# --- Items and users ---

def test_item_search(db_session, make_user, make_item):
    owner = make_user("Owner", "owner@example.com")
    drill = make_item(owner, name="Power Drill", description="18V")
    make_item(owner, name="Old drill", description="Broken", available=False)
    bits = make_item(owner, name="Bits", description="Set of DRILL bits")
    make_item(owner, name="100% cotton sheet", description="Queen size")

    repo = crud.SqlItemRepository(db_session)
    assert [i.id for i in repo.search("drill")] == [drill.id, bits.id]
    # LIKE wildcards in the text are matched literally
    assert [i.name for i in repo.search("%")] == ["100% cotton sheet"]


def test_user_lookup_by_email(db_session, make_user):
    user = make_user("Ann", "ann@example.com")
    repo = crud.SqlUserRepository(db_session)
    assert repo.get_by_email("ann@example.com").id == user.id
    assert repo.get_by_email("nobody@example.com") is None


def test_user_is_referenced(db_session, make_user, make_item, make_booking):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    loner = make_user("Loner", "loner@example.com")
    make_booking(make_item(owner), booker, NOW, NOW + timedelta(days=1))

    repo = crud.SqlUserRepository(db_session)
    assert repo.is_referenced(owner.id) is True
    assert repo.is_referenced(booker.id) is True
    assert repo.is_referenced(loner.id) is False


# --- Outbox relay ---

def test_relay_pending_events_sends_and_deletes(db_session, make_user, make_item):
    owner = make_user("Owner", "owner@example.com")
    booker = make_user("Booker", "booker@example.com")
    item = make_item(owner)
    crud.SqlBookingRepository(db_session).add(
        models.Booking(item_id=item.id, booker_id=booker.id, start=NOW, end=NOW + timedelta(hours=3),
                       status=models.BookingStatus.WAITING)
    )

    producer = MagicMock()
    producer.send_and_wait = AsyncMock()

    sent = asyncio.run(relay_pending_events(db_session, producer))

    assert sent == 1
    producer.send_and_wait.assert_awaited_once()
    assert producer.send_and_wait.call_args.kwargs["topic"] == settings.KAFKA_BOOKING_TOPIC
    assert db_session.query(models.OutboxEvent).count() == 0


def test_relay_keeps_events_that_fail(db_session):
    db_session.add(models.OutboxEvent(topic="booking_events", payload="{}", status="PENDING"))
    db_session.commit()

    producer = MagicMock()
    producer.send_and_wait = AsyncMock(side_effect=RuntimeError("broker down"))

    assert asyncio.run(relay_pending_events(db_session, producer)) == 0
    assert db_session.query(models.OutboxEvent).count() == 1
