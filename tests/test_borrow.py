from datetime import date, timedelta
from decimal import Decimal

import pytest

from books.models import Book
from circulation.exceptions import Conflict, NotFound
from loans.models import Loan
from reservations.models import Reservation

pytestmark = pytest.mark.django_db


def test_borrow_creates_active_loan_and_takes_a_copy(engine, make_user, make_book):
    user = make_user()
    book = make_book(copies=2)

    loan = engine.borrow(user.id, book.id)

    book.refresh_from_db()
    assert book.available_copies == 1
    assert loan.status == Loan.Status.ACTIVE
    assert loan.borrow_date == date(2025, 3, 1)
    assert loan.due_date == date(2025, 3, 15)
    assert loan.return_date is None
    assert loan.fine_amount == Decimal("0.00")


def test_borrow_uses_explicit_loan_duration(engine, make_user, make_book):
    loan = engine.borrow(make_user().id, make_book().id, loan_duration_days=7)

    assert loan.due_date - loan.borrow_date == timedelta(days=7)


def test_borrow_missing_book(engine, make_user):
    with pytest.raises(NotFound) as exc_info:
        engine.borrow(make_user().id, 99999)

    assert exc_info.value.code == "book_not_found"


def test_borrow_missing_user(engine, make_book):
    book = make_book()

    with pytest.raises(NotFound) as exc_info:
        engine.borrow(99999, book.id)

    assert exc_info.value.code == "user_not_found"
    book.refresh_from_db()
    assert book.available_copies == 1


def test_borrow_without_copies_conflicts(engine, make_user, make_book):
    book = make_book(copies=1)
    engine.borrow(make_user().id, book.id)

    with pytest.raises(Conflict) as exc_info:
        engine.borrow(make_user().id, book.id)

    assert exc_info.value.code == "no_copies"
    assert Loan.objects.filter(book=book).count() == 1


def test_borrow_same_book_twice_conflicts(engine, make_user, make_book, assert_copy_invariants):
    user = make_user()
    book = make_book(copies=3)
    engine.borrow(user.id, book.id)

    with pytest.raises(Conflict) as exc_info:
        engine.borrow(user.id, book.id)

    assert exc_info.value.code == "already_borrowed"
    book.refresh_from_db()
    assert book.available_copies == 2
    assert_copy_invariants()


def test_sixth_loan_hits_the_limit(engine, make_user, make_book, assert_copy_invariants):
    user = make_user()
    for _ in range(5):
        engine.borrow(user.id, make_book().id)
    sixth = make_book()

    with pytest.raises(Conflict) as exc_info:
        engine.borrow(user.id, sixth.id)

    assert exc_info.value.code == "loan_limit"
    assert "Loan limit reached" in str(exc_info.value)
    sixth.refresh_from_db()
    assert sixth.available_copies == 1
    assert Loan.objects.active().for_user(user.id).count() == 5
    assert_copy_invariants()


def test_returned_loans_do_not_count_toward_the_limit(engine, make_user, make_book):
    user = make_user()
    loans = [engine.borrow(user.id, make_book().id) for _ in range(5)]
    engine.return_loan(loans[0].id)

    loan = engine.borrow(user.id, make_book().id)

    assert loan.status == Loan.Status.ACTIVE


def test_borrow_fulfils_the_borrowers_reservation(engine, make_user, make_book):
    holder, waiting, other = make_user(), make_user(), make_user()
    book = make_book(copies=1)
    loan = engine.borrow(holder.id, book.id)
    waiting_ticket = engine.reserve(waiting.id, book.id)
    other_ticket = engine.reserve(other.id, book.id)

    engine.return_loan(loan.id)
    engine.borrow(waiting.id, book.id)

    assert Reservation.objects.get(pk=waiting_ticket.reservation_id).status == "fulfilled"
    assert Reservation.objects.get(pk=other_ticket.reservation_id).status == "active"


def test_borrow_rejects_negative_duration(engine, make_user, make_book):
    with pytest.raises(Conflict) as exc_info:
        engine.borrow(make_user().id, make_book().id, loan_duration_days=-1)

    assert exc_info.value.code == "invalid_duration"
    assert Book.objects.get().available_copies == 1
