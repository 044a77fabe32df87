import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from django.db import connection

from books.models import Book
from circulation.engine import Actor, CirculationEngine
from circulation.exceptions import CirculationError, Conflict
from loans.models import Loan


@pytest.mark.django_db
def test_two_copy_walkthrough(engine, clock, make_user, make_book, assert_copy_invariants):
    a, b, c = make_user(), make_user(), make_user()
    book = make_book(copies=2)

    loan_a = engine.borrow(a.id, book.id)
    book.refresh_from_db()
    assert book.available_copies == 1
    assert loan_a.status == Loan.Status.ACTIVE
    assert (loan_a.due_date - loan_a.borrow_date).days == 14

    engine.borrow(b.id, book.id)
    book.refresh_from_db()
    assert book.available_copies == 0

    with pytest.raises(Conflict):
        engine.borrow(c.id, book.id)

    ticket = engine.reserve(c.id, book.id)
    assert ticket.queue_position == 1

    clock.advance(days=14 + 20)
    receipt = engine.return_loan(loan_a.id, fine_per_day=Decimal("0.50"))

    assert receipt.days_late == 20
    assert receipt.fine_amount == Decimal("10.00")
    book.refresh_from_db()
    assert book.available_copies == 1
    assert_copy_invariants()


@pytest.mark.django_db
def test_invariants_hold_through_mixed_traffic(engine, clock, make_user, make_book, assert_copy_invariants):
    users = [make_user() for _ in range(6)]
    books = [make_book(copies=n) for n in (1, 2, 3)]
    open_loans = []

    for round_number in range(4):
        for user in users:
            for book in books:
                try:
                    open_loans.append(engine.borrow(user.id, book.id))
                except Conflict:
                    try:
                        engine.reserve(user.id, book.id)
                    except Conflict:
                        pass
                assert_copy_invariants()
        clock.advance(days=9)
        for loan in open_loans[round_number::3]:
            try:
                engine.return_loan(loan.id, actor=Actor(user_id=loan.user_id, role="member"))
            except Conflict:
                pass
            assert_copy_invariants()


@pytest.mark.django_db(transaction=True)
def test_concurrent_borrows_of_the_last_copy(policy, make_user, make_book, assert_copy_invariants):
    workers = 8
    book = make_book(copies=1)
    users = [make_user() for _ in range(workers)]
    barrier = threading.Barrier(workers)

    def attempt(user_id):
        engine = CirculationEngine(policy=policy)
        try:
            barrier.wait(timeout=10)
            engine.borrow(user_id, book.id)
            return "ok"
        except CirculationError as e:
            return e.code
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(attempt, [u.id for u in users]))

    assert results.count("ok") == 1
    assert results.count("no_copies") == workers - 1
    assert Book.objects.get(pk=book.pk).available_copies == 0
    assert Loan.objects.filter(book=book).count() == 1
    assert_copy_invariants()
