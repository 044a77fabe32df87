import itertools
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from books.models import Book
from circulation.conf import CirculationPolicy
from circulation.engine import CirculationEngine
from loans.models import Loan

_sequence = itertools.count(1)


class FrozenClock:
    """Callable clock the engine reads `now` from; tests move it by hand."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=dt_timezone.utc))


@pytest.fixture
def policy():
    return CirculationPolicy(
        fine_per_day=Decimal("0.50"),
        loan_duration_days=14,
        max_loans_per_user=5,
        retry_backoff=0,
    )


@pytest.fixture
def engine(policy, clock):
    return CirculationEngine(policy=policy, clock=clock)


@pytest.fixture
def make_user():
    def factory(role="member", **kwargs):
        n = next(_sequence)
        return get_user_model().objects.create_user(
            username=f"user{n}",
            email=f"user{n}@library.test",
            password="Password123!@#",
            role=role,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_book():
    def factory(copies=1, **kwargs):
        n = next(_sequence)
        return Book.objects.create(
            title=kwargs.pop("title", f"Book {n}"),
            author=kwargs.pop("author", "Test Author"),
            isbn=kwargs.pop("isbn", f"978{n:010d}"),
            total_copies=copies,
            available_copies=copies,
            **kwargs,
        )

    return factory


@pytest.fixture
def assert_copy_invariants():
    def check():
        for book in Book.objects.all():
            active = Loan.objects.active().filter(book=book).count()
            assert 0 <= book.available_copies <= book.total_copies, book
            assert active + book.available_copies == book.total_copies, book

    return check


@pytest.fixture
def api_client():
    return APIClient()
