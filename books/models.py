from django.db import models


class Book(models.Model):
    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255)
    isbn = models.CharField(max_length=20, unique=True)
    total_copies = models.PositiveIntegerField(default=1)
    available_copies = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["title", "author"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_copies__gte=0),
                name="available_copies_not_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(available_copies__lte=models.F("total_copies")),
                name="available_copies_within_total",
            ),
        ]

    def __str__(self):
        return f"{self.title} by {self.author}"

    @property
    def is_available(self):
        return self.available_copies > 0

    @property
    def copies_in_circulation(self):
        return self.total_copies - self.available_copies

    def take_copy(self, using=None):
        """Compare-and-swap decrement; False when the last copy is already gone"""
        updated = (
            Book.objects.using(using)
            .filter(pk=self.pk, available_copies__gt=0)
            .update(available_copies=models.F("available_copies") - 1)
        )
        if updated:
            self.refresh_from_db(using=using, fields=["available_copies"])
            return True
        return False

    def put_back_copy(self, using=None):
        """Increment available copies, clamped at total_copies"""
        updated = (
            Book.objects.using(using)
            .filter(pk=self.pk, available_copies__lt=models.F("total_copies"))
            .update(available_copies=models.F("available_copies") + 1)
        )
        self.refresh_from_db(using=using, fields=["available_copies"])
        return bool(updated)
