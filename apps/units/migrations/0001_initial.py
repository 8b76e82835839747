from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Unit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=20, unique=True)),
                (
                    "unit_type",
                    models.CharField(
                        blank=True,
                        help_text="Catalog label of the unit type (managed outside this service).",
                        max_length=100,
                    ),
                ),
                ("floor", models.SmallIntegerField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("occupied", "Occupied"),
                            ("cleaning", "Needs cleaning"),
                            ("maintenance", "Under maintenance"),
                            ("reserved", "Temporarily reserved"),
                        ],
                        default="available",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Unit",
                "verbose_name_plural": "Units",
                "ordering": ["number"],
                "indexes": [models.Index(fields=["status"], name="units_unit_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="TemporaryReservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("reserve_date", models.DateField()),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="temporary_reservations",
                        to="units.unit",
                    ),
                ),
            ],
            options={
                "verbose_name": "Temporary reservation",
                "verbose_name_plural": "Temporary reservations",
                "ordering": ["-created_at"],
            },
        ),
    ]
