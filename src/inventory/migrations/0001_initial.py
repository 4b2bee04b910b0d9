import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="InventoryUnit",
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
                (
                    "property_code",
                    models.CharField(max_length=50, unique=True),
                ),
                (
                    "tag_number",
                    models.CharField(
                        blank=True,
                        help_text="Human-facing serial, unique per unit",
                        max_length=100,
                        null=True,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("category", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Available", "Available"),
                            ("InUse", "In Use"),
                            ("UnderMaintenance", "Under Maintenance"),
                            ("Damaged", "Damaged"),
                        ],
                        default="Available",
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "date_received",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "image_url",
                    models.CharField(
                        blank=True,
                        help_text=(
                            "Units sharing an image URL are shown as one "
                            "property"
                        ),
                        max_length=500,
                    ),
                ),
                ("remarks", models.TextField(blank=True)),
                (
                    "borrower_name",
                    models.CharField(blank=True, max_length=200),
                ),
                ("borrowed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "return_due_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("overdue_notified", models.BooleanField(default=False)),
                ("updated_by", models.CharField(blank=True, max_length=254)),
                (
                    "last_updated",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("version", models.PositiveIntegerField(default=1)),
            ],
            options={
                "ordering": ["pk"],
                "indexes": [
                    models.Index(fields=["status"], name="idx_unit_status"),
                    models.Index(
                        fields=["image_url"], name="idx_unit_image_url"
                    ),
                    models.Index(
                        fields=["return_due_at"],
                        name="idx_unit_return_due_at",
                    ),
                ],
            },
        ),
    ]
