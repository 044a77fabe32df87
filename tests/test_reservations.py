import pytest

from circulation.engine import Actor
from circulation.exceptions import Conflict, Forbidden, NotFound
from circulation.queries import queue_position
from reservations.models import Reservation

pytestmark = pytest.mark.django_db


@pytest.fixture
def lent_out_book(engine, make_user, make_book):
    book = make_book(copies=1)
    engine.borrow(make_user().id, book.id)
    return book


def test_reserve_available_book_conflicts(engine, make_user, make_book):
    with pytest.raises(Conflict) as exc_info:
        engine.reserve(make_user().id, make_book(copies=1).id)

    assert exc_info.value.code == "book_available"
    assert not Reservation.objects.exists()


def test_reserve_missing_book(engine, make_user):
    with pytest.raises(NotFound):
        engine.reserve(make_user().id, 31337)


def test_reserve_returns_queue_position(engine, clock, make_user, lent_out_book):
    first = engine.reserve(make_user().id, lent_out_book.id)
    clock.advance(minutes=5)
    second = engine.reserve(make_user().id, lent_out_book.id)

    assert first.queue_position == 1
    assert second.queue_position == 2


def test_duplicate_reservation_conflicts(engine, make_user, lent_out_book):
    user = make_user()
    engine.reserve(user.id, lent_out_book.id)

    with pytest.raises(Conflict) as exc_info:
        engine.reserve(user.id, lent_out_book.id)

    assert exc_info.value.code == "duplicate_reservation"
    assert Reservation.objects.filter(user=user).count() == 1


def test_reserve_again_after_cancelling(engine, make_user, lent_out_book):
    user = make_user()
    ticket = engine.reserve(user.id, lent_out_book.id)
    engine.cancel_reservation(ticket.reservation_id, Actor.from_user(user))

    again = engine.reserve(user.id, lent_out_book.id)

    assert again.reservation_id != ticket.reservation_id
    assert again.queue_position == 1


def test_positions_keep_fifo_order_across_cancellations(engine, clock, make_user, lent_out_book):
    users = [make_user() for _ in range(4)]
    tickets = []
    for user in users:
        tickets.append(engine.reserve(user.id, lent_out_book.id))
        clock.advance(seconds=1)

    engine.cancel_reservation(tickets[1].reservation_id, Actor.from_user(users[1]))

    positions = [
        queue_position(Reservation.objects.get(pk=t.reservation_id))
        for t in (tickets[0], tickets[2], tickets[3])
    ]
    assert positions == [1, 2, 3]
    assert queue_position(Reservation.objects.get(pk=tickets[1].reservation_id)) is None


def test_same_timestamp_reservations_rank_by_creation(engine, make_user, lent_out_book):
    # The clock is not advanced, every reservation shares one reserved_at
    tickets = [engine.reserve(make_user().id, lent_out_book.id) for _ in range(3)]

    assert [t.queue_position for t in tickets] == [1, 2, 3]


def test_queue_position_annotation_matches_helper(engine, clock, make_user, make_book):
    books = [make_book(copies=1), make_book(copies=1)]
    for book in books:
        engine.borrow(make_user().id, book.id)
    for _ in range(3):
        for book in books:
            engine.reserve(make_user().id, book.id)
            clock.advance(seconds=30)
    first = Reservation.objects.filter(book=books[0]).order_by("reserved_at").first()
    engine.cancel_reservation(first.id, Actor(user_id=first.user_id, role="member"))

    for reservation in Reservation.objects.with_queue_position().active():
        assert reservation.queue_position == queue_position(reservation)


def test_member_cannot_cancel_someone_elses_reservation(engine, make_user, lent_out_book):
    ticket = engine.reserve(make_user().id, lent_out_book.id)

    with pytest.raises(Forbidden):
        engine.cancel_reservation(ticket.reservation_id, Actor.from_user(make_user()))

    assert Reservation.objects.get(pk=ticket.reservation_id).is_active


def test_librarian_cancels_any_reservation(engine, make_user, lent_out_book):
    ticket = engine.reserve(make_user().id, lent_out_book.id)

    cancelled = engine.cancel_reservation(
        ticket.reservation_id, Actor.from_user(make_user(role="librarian"))
    )

    assert cancelled.status == Reservation.Status.CANCELLED


def test_cancel_twice_conflicts(engine, make_user, lent_out_book):
    user = make_user()
    ticket = engine.reserve(user.id, lent_out_book.id)
    engine.cancel_reservation(ticket.reservation_id, Actor.from_user(user))

    with pytest.raises(Conflict) as exc_info:
        engine.cancel_reservation(ticket.reservation_id, Actor.from_user(user))

    assert exc_info.value.code == "not_active"


def test_cancel_unknown_reservation(engine, make_user):
    with pytest.raises(NotFound):
        engine.cancel_reservation(555, Actor.from_user(make_user()))
