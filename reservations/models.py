from django.conf import settings
from django.db import models
from django.db.models import Count, IntegerField, OuterRef, Q, Subquery, Value
from django.db.models.functions import Coalesce

from books.models import Book


class ReservationQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=Reservation.Status.ACTIVE)

    def for_book(self, book_id):
        return self.filter(book_id=book_id)

    def ahead_of(self, reservation):
        """Active reservations for the same book queued before `reservation`."""
        return (
            self.active()
            .for_book(reservation.book_id)
            .filter(
                Q(reserved_at__lt=reservation.reserved_at)
                | Q(reserved_at=reservation.reserved_at, pk__lt=reservation.pk)
            )
        )

    def with_queue_position(self):
        """Annotate `queue_position` with one correlated subquery per row."""
        ahead = (
            Reservation.objects.filter(
                status=Reservation.Status.ACTIVE,
                book_id=OuterRef("book_id"),
            )
            .filter(
                Q(reserved_at__lt=OuterRef("reserved_at"))
                | Q(reserved_at=OuterRef("reserved_at"), pk__lt=OuterRef("pk"))
            )
            .order_by()
            .values("book_id")
            .annotate(n=Count("pk"))
            .values("n")
        )
        return self.annotate(
            queue_position=Coalesce(
                Subquery(ahead, output_field=IntegerField()), Value(0)
            )
            + 1
        )


class Reservation(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        CANCELLED = "cancelled", "Cancelled"
        FULFILLED = "fulfilled", "Fulfilled"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reservations",
    )
    book = models.ForeignKey(
        Book, on_delete=models.PROTECT, related_name="reservations"
    )
    reserved_at = models.DateTimeField()
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.ACTIVE
    )

    objects = ReservationQuerySet.as_manager()

    class Meta:
        ordering = ["book_id", "reserved_at", "id"]
        indexes = [
            models.Index(
                fields=["book", "status", "reserved_at"], name="reservation_queue_idx"
            ),
        ]
        constraints = [
            # One active reservation per user and book
            models.UniqueConstraint(
                fields=["user", "book"],
                condition=models.Q(status="active"),
                name="unique_active_reservation",
            ),
        ]

    def __str__(self):
        return f"Reservation {self.id}: user {self.user_id} for book {self.book_id} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE
