import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="JobCampaign",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_email", models.EmailField(max_length=254)),
                ("title", models.CharField(blank=True, max_length=255)),
                ("keywords", models.CharField(max_length=255)),
                (
                    "platform",
                    models.CharField(
                        choices=[
                            ("linkedin", "LinkedIn"),
                            ("indeed", "Indeed"),
                            ("glassdoor", "Glassdoor"),
                            ("bayt", "Bayt"),
                            ("naukri", "Naukri"),
                        ],
                        max_length=20,
                    ),
                ),
                ("job_limit", models.PositiveIntegerField(default=10)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("cv_reference", models.CharField(blank=True, max_length=500, null=True)),
                ("cover_letter_reference", models.CharField(blank=True, max_length=500, null=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("cities", models.JSONField(blank=True, default=list)),
                ("city_codes", models.JSONField(blank=True, default=list)),
                ("experience", models.CharField(blank=True, max_length=20)),
                ("freshness", models.CharField(blank=True, max_length=20)),
                ("remote", models.CharField(blank=True, max_length=20)),
                ("sort", models.CharField(blank=True, max_length=20)),
                ("scraper_payload", models.JSONField(blank=True, default=dict)),
                ("scraper_response", models.JSONField(blank=True, default=dict)),
                ("jobs_found", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="campaigns",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="campaigns_j_user_id_3c8a52_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "processing"])),
                        fields=("user",),
                        name="one_active_campaign_per_user",
                    ),
                ],
            },
        ),
    ]
