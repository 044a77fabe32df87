from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("books", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Loan",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("borrow_date", models.DateField()),
                ("due_date", models.DateField()),
                ("return_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("returned", "Returned"),
                            ("overdue", "Overdue"),
                        ],
                        default="active",
                        max_length=10,
                    ),
                ),
                (
                    "fine_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=8
                    ),
                ),
                (
                    "book",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="loans",
                        to="books.book",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="loans",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-borrow_date", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(due_date__gt=models.F("borrow_date")),
                        name="due_after_borrow",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(return_date__isnull=True)
                        | models.Q(return_date__gte=models.F("borrow_date")),
                        name="return_after_borrow",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(fine_amount__gte=0),
                        name="fine_not_negative",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(return_date__isnull=True),
                        fields=("user", "book"),
                        name="unique_active_loan",
                    ),
                ],
            },
        ),
    ]
