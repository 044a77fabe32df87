"""
Read path over the data the engine maintains.

Nothing here takes locks; listings run at the connection's default isolation
and may be slightly stale. Filters are typed dataclasses that compile to ORM
lookups.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.utils import timezone

from loans.models import Loan
from reservations.models import Reservation


def queue_position(reservation: Reservation) -> Optional[int]:
    """1-based rank among active reservations for the same book.

    Cancelled and fulfilled reservations are not queued and have no position.
    """
    if not reservation.is_active:
        return None
    return Reservation.objects.ahead_of(reservation).count() + 1


def days_overdue(loan: Loan, today: Optional[date] = None) -> int:
    return loan.days_overdue(today)


def effective_status(loan: Loan, today: Optional[date] = None) -> str:
    return loan.effective_status(today)


def _parse_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class LoanFilter:
    user_id: Optional[int] = None
    book_id: Optional[int] = None
    status: Optional[str] = None
    overdue: bool = False

    @classmethod
    def from_query_params(cls, params):
        status = params.get("status")
        if status not in Loan.Status.values:
            status = None
        return cls(
            user_id=_parse_int(params.get("user_id")),
            book_id=_parse_int(params.get("book_id")),
            status=status,
            overdue=params.get("overdue", "false").lower() == "true",
        )

    def apply(self, queryset, today: Optional[date] = None):
        today = today or timezone.localdate()
        if self.user_id is not None:
            queryset = queryset.filter(user_id=self.user_id)
        if self.book_id is not None:
            queryset = queryset.filter(book_id=self.book_id)
        if self.status == Loan.Status.OVERDUE or self.overdue:
            queryset = queryset.overdue(today)
        elif self.status == Loan.Status.ACTIVE:
            queryset = queryset.active()
        elif self.status == Loan.Status.RETURNED:
            queryset = queryset.returned()
        return queryset


@dataclass(frozen=True)
class ReservationFilter:
    user_id: Optional[int] = None
    book_id: Optional[int] = None
    status: Optional[str] = None

    @classmethod
    def from_query_params(cls, params):
        status = params.get("status")
        if status not in Reservation.Status.values:
            status = None
        return cls(
            user_id=_parse_int(params.get("user_id")),
            book_id=_parse_int(params.get("book_id")),
            status=status,
        )

    def apply(self, queryset):
        if self.user_id is not None:
            queryset = queryset.filter(user_id=self.user_id)
        if self.book_id is not None:
            queryset = queryset.filter(book_id=self.book_id)
        if self.status is not None:
            queryset = queryset.filter(status=self.status)
        return queryset
