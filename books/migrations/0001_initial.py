from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Book",
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
                ("title", models.CharField(max_length=255)),
                ("author", models.CharField(max_length=255)),
                ("isbn", models.CharField(max_length=20, unique=True)),
                ("total_copies", models.PositiveIntegerField(default=1)),
                ("available_copies", models.PositiveIntegerField(default=1)),
            ],
            options={
                "ordering": ["title", "author"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(available_copies__gte=0),
                        name="available_copies_not_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            available_copies__lte=models.F("total_copies")
                        ),
                        name="available_copies_within_total",
                    ),
                ],
            },
        ),
    ]
