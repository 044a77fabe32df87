from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from books.models import Book


class LoanQuerySet(models.QuerySet):
    def active(self):
        return self.filter(return_date__isnull=True)

    def returned(self):
        return self.filter(return_date__isnull=False)

    def overdue(self, today=None):
        today = today or timezone.localdate()
        return self.active().filter(due_date__lt=today)

    def for_user(self, user_id):
        return self.filter(user_id=user_id)


class Loan(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        RETURNED = "returned", "Returned"
        # Never stored; reported by effective_status for late, unreturned loans
        OVERDUE = "overdue", "Overdue"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="loans"
    )
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="loans")
    borrow_date = models.DateField()
    due_date = models.DateField()
    return_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.ACTIVE
    )
    fine_amount = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal("0.00")
    )

    objects = LoanQuerySet.as_manager()

    class Meta:
        ordering = ["-borrow_date", "-id"]
        constraints = [
            # Due date must be after borrow date
            models.CheckConstraint(
                condition=models.Q(due_date__gt=models.F("borrow_date")),
                name="due_after_borrow",
            ),
            # Return date must be on or after borrow date (if not null)
            models.CheckConstraint(
                condition=models.Q(return_date__isnull=True)
                | models.Q(return_date__gte=models.F("borrow_date")),
                name="return_after_borrow",
            ),
            models.CheckConstraint(
                condition=models.Q(fine_amount__gte=0), name="fine_not_negative"
            ),
            # One active loan per user and book
            models.UniqueConstraint(
                fields=["user", "book"],
                condition=models.Q(return_date__isnull=True),
                name="unique_active_loan",
            ),
        ]

    def __str__(self):
        return f"Loan {self.id}: {self.book_id} to user {self.user_id} due {self.due_date}"

    @property
    def is_returned(self):
        return self.return_date is not None

    def days_overdue(self, today: date | None = None) -> int:
        """Whole days past due for an unreturned loan, 0 otherwise."""
        if self.is_returned:
            return 0
        today = today or timezone.localdate()
        return max((today - self.due_date).days, 0)

    def effective_status(self, today: date | None = None) -> str:
        if not self.is_returned and self.days_overdue(today) > 0:
            return self.Status.OVERDUE
        return self.status
