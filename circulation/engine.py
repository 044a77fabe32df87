"""
Circulation engine: borrow, return, reserve and cancel as atomic units of work.

Each operation runs inside one `transaction.atomic` block on the engine's
database alias and takes row locks (`select_for_update`) on the rows whose
counters it checks before acting on them. Copy counters are moved with
compare-and-swap updates (see `Book.take_copy`), so the bounds
0 <= available_copies <= total_copies hold on backends without row locks too.

Lock timeouts, deadlocks and dropped connections are retried a bounded
number of times and then reported as `TransientError`. A failed unit of work
rolls back entirely.
"""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.contrib.auth import get_user_model
from django.db import (
    DEFAULT_DB_ALIAS,
    IntegrityError,
    InterfaceError,
    OperationalError,
    connections,
    transaction,
)
from django.utils import timezone

from books.models import Book
from circulation.conf import CirculationPolicy
from circulation.exceptions import Conflict, Forbidden, NotFound, TransientError
from loans.models import Loan
from reservations.models import Reservation

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Actor:
    """Authenticated identity and role, trusted as resolved by the auth layer."""

    user_id: int
    role: str

    @property
    def is_member(self):
        return self.role == "member"

    @classmethod
    def from_user(cls, user):
        role = user.role
        if user.is_superuser:
            role = "admin"
        elif user.is_staff and role == "member":
            role = "librarian"
        return cls(user_id=user.pk, role=role)


@dataclass(frozen=True)
class ReturnReceipt:
    loan_id: int
    fine_amount: Decimal
    days_late: int


@dataclass(frozen=True)
class ReservationTicket:
    reservation_id: int
    queue_position: int


def compute_fine(days_late: int, fine_per_day) -> Decimal:
    """Fine for `days_late` whole days, rounded half-up to cents."""
    amount = Decimal(max(days_late, 0)) * Decimal(str(fine_per_day))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class CirculationEngine:
    def __init__(self, using=DEFAULT_DB_ALIAS, policy=None, clock=timezone.now):
        self.using = using
        self.policy = policy or CirculationPolicy.from_settings()
        self.clock = clock

    def today(self):
        return timezone.localdate(self.clock())

    # unit of work

    def _limit_lock_wait(self):
        connection = connections[self.using]
        if connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                cursor.execute(
                    f"SET LOCAL lock_timeout = {int(self.policy.lock_timeout_ms)}"
                )

    def _run(self, operation, work, on_integrity_error):
        """Run `work` in a transaction, retrying transient database failures.

        An IntegrityError means a concurrent request committed the same row
        first (a unique constraint fired); it is reported as
        `on_integrity_error`.
        """
        nested = connections[self.using].in_atomic_block
        attempts = 1 if nested else self.policy.lock_retries

        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic(using=self.using):
                    self._limit_lock_wait()
                    return work()
            except IntegrityError as e:
                logger.info(f"{operation}: integrity conflict: {e}")
                raise on_integrity_error from e
            except (OperationalError, InterfaceError) as e:
                if attempt >= attempts:
                    logger.error(
                        f"{operation}: giving up after {attempt} attempt(s): {e}"
                    )
                    raise TransientError(
                        f"{operation} could not complete, please retry",
                        code="transient",
                    ) from e
                logger.warning(
                    f"{operation}: attempt {attempt}/{attempts} failed ({e}), retrying"
                )
                time.sleep(self.policy.retry_backoff * attempt)

    def _lock_book(self, book_id):
        book = (
            Book.objects.using(self.using)
            .select_for_update()
            .filter(pk=book_id)
            .first()
        )
        if book is None:
            raise NotFound(f"Book {book_id} not found.", code="book_not_found")
        return book

    # operations

    def borrow(self, user_id, book_id, loan_duration_days=None):
        """Lend one copy of `book_id` to `user_id` and return the new Loan."""
        duration = (
            self.policy.loan_duration_days if loan_duration_days is None else loan_duration_days
        )
        if duration < 1:
            raise Conflict("Loan duration must be at least one day.", code="invalid_duration")

        def work():
            user = (
                get_user_model()
                .objects.using(self.using)
                .select_for_update()
                .filter(pk=user_id)
                .first()
            )
            book = self._lock_book(book_id)
            if user is None:
                raise NotFound(f"User {user_id} not found.", code="user_not_found")

            if book.available_copies <= 0:
                raise Conflict("No copies available, reserve instead.", code="no_copies")

            active_loans = Loan.objects.using(self.using).active().for_user(user_id)
            if active_loans.count() >= self.policy.max_loans_per_user:
                raise Conflict(
                    f"Loan limit reached ({self.policy.max_loans_per_user} active loans).",
                    code="loan_limit",
                )
            if active_loans.filter(book_id=book_id).exists():
                raise Conflict("Book already borrowed by this user.", code="already_borrowed")

            if not book.take_copy(using=self.using):
                raise Conflict("No copies available, reserve instead.", code="no_copies")

            today = self.today()
            loan = Loan.objects.using(self.using).create(
                user_id=user_id,
                book_id=book_id,
                borrow_date=today,
                due_date=today + timedelta(days=duration),
                status=Loan.Status.ACTIVE,
                fine_amount=Decimal("0.00"),
            )

            # The borrower leaves the queue they were waiting in
            Reservation.objects.using(self.using).active().filter(
                user_id=user_id, book_id=book_id
            ).update(status=Reservation.Status.FULFILLED)
            return loan

        loan = self._run(
            "borrow",
            work,
            Conflict("Book already borrowed by this user.", code="already_borrowed"),
        )
        logger.info(
            f"Loan {loan.id}: book {book_id} lent to user {user_id}, due {loan.due_date}"
        )
        return loan

    def return_loan(self, loan_id, fine_per_day=None, actor=None):
        """Close an active loan, charge the late fine and shelve the copy."""
        rate = self.policy.fine_per_day if fine_per_day is None else Decimal(str(fine_per_day))
        if rate < 0:
            raise Conflict("Fine per day cannot be negative.", code="invalid_fine_rate")

        def work():
            loan = (
                Loan.objects.using(self.using)
                .select_for_update()
                .filter(pk=loan_id)
                .first()
            )
            if loan is None:
                raise NotFound(f"Loan {loan_id} not found.", code="loan_not_found")
            if actor is not None and actor.is_member and loan.user_id != actor.user_id:
                raise Forbidden("You can only return your own loans.")
            if loan.is_returned:
                raise Conflict("This loan has already been returned.", code="already_returned")

            today = self.today()
            days_late = max((today - loan.due_date).days, 0)
            fine_amount = compute_fine(days_late, rate)

            loan.return_date = today
            loan.status = Loan.Status.RETURNED
            loan.fine_amount = fine_amount
            loan.save(using=self.using, update_fields=["return_date", "status", "fine_amount"])

            book = self._lock_book(loan.book_id)
            if not book.put_back_copy(using=self.using):
                logger.warning(
                    f"Loan {loan.id}: book {book.id} already has all "
                    f"{book.total_copies} copies on the shelf"
                )
            return ReturnReceipt(loan_id=loan.id, fine_amount=fine_amount, days_late=days_late)

        receipt = self._run(
            "return",
            work,
            Conflict("This loan has already been returned.", code="already_returned"),
        )
        logger.info(
            f"Loan {receipt.loan_id}: returned {receipt.days_late} day(s) late, "
            f"fine {receipt.fine_amount}"
        )
        return receipt

    def reserve(self, user_id, book_id):
        """Queue `user_id` for a book that has no copy on the shelf."""

        def work():
            book = self._lock_book(book_id)
            if not get_user_model().objects.using(self.using).filter(pk=user_id).exists():
                raise NotFound(f"User {user_id} not found.", code="user_not_found")
            if book.available_copies > 0:
                raise Conflict(
                    "Book is currently available. Please borrow it instead.",
                    code="book_available",
                )

            reservations = Reservation.objects.using(self.using)
            if reservations.active().filter(user_id=user_id, book_id=book_id).exists():
                raise Conflict(
                    "You already have an active reservation for this book.",
                    code="duplicate_reservation",
                )

            reservation = reservations.create(
                user_id=user_id,
                book_id=book_id,
                reserved_at=self.clock(),
                status=Reservation.Status.ACTIVE,
            )
            position = reservations.ahead_of(reservation).count() + 1
            return ReservationTicket(reservation_id=reservation.id, queue_position=position)

        ticket = self._run(
            "reserve",
            work,
            Conflict(
                "You already have an active reservation for this book.",
                code="duplicate_reservation",
            ),
        )
        logger.info(
            f"Reservation {ticket.reservation_id}: user {user_id} queued for "
            f"book {book_id} at position {ticket.queue_position}"
        )
        return ticket

    def cancel_reservation(self, reservation_id, actor):
        def work():
            reservation = (
                Reservation.objects.using(self.using)
                .select_for_update()
                .filter(pk=reservation_id)
                .first()
            )
            if reservation is None:
                raise NotFound(
                    f"Reservation {reservation_id} not found.", code="reservation_not_found"
                )
            if actor.is_member and reservation.user_id != actor.user_id:
                raise Forbidden("You can only cancel your own reservations.")
            if not reservation.is_active:
                raise Conflict("Reservation is not active.", code="not_active")

            reservation.status = Reservation.Status.CANCELLED
            reservation.save(using=self.using, update_fields=["status"])
            return reservation

        reservation = self._run(
            "cancel_reservation",
            work,
            Conflict("Reservation is not active.", code="not_active"),
        )
        logger.info(f"Reservation {reservation.id}: cancelled by user {actor.user_id}")
        return reservation

    def change_total_copies(self, book_id, total_copies):
        """Set a book's copy count, keeping the copies currently on loan out."""
        if total_copies < 0:
            raise Conflict("Total copies cannot be negative.", code="invalid_total")

        def work():
            book = self._lock_book(book_id)
            on_loan = Loan.objects.using(self.using).active().filter(book_id=book_id).count()
            book.total_copies = total_copies
            book.available_copies = max(0, total_copies - on_loan)
            book.save(using=self.using, update_fields=["total_copies", "available_copies"])
            return book

        book = self._run(
            "change_total_copies",
            work,
            Conflict("Copy counts changed concurrently, please retry.", code="concurrent_change"),
        )
        logger.info(
            f"Book {book.id}: total copies set to {book.total_copies}, "
            f"{book.available_copies} available"
        )
        return book
