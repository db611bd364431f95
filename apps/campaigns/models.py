import uuid

from django.db import models
from django.db.models import Q


class JobCampaign(models.Model):
    """
    A job-search request forwarded to an external scraper. A user may hold
    at most one campaign that is still ``pending`` or ``processing``.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

    PLATFORM_LINKEDIN = "linkedin"
    PLATFORM_INDEED = "indeed"
    PLATFORM_GLASSDOOR = "glassdoor"
    PLATFORM_BAYT = "bayt"
    PLATFORM_NAUKRI = "naukri"

    PLATFORM_CHOICES = [
        (PLATFORM_LINKEDIN, "LinkedIn"),
        (PLATFORM_INDEED, "Indeed"),
        (PLATFORM_GLASSDOOR, "Glassdoor"),
        (PLATFORM_BAYT, "Bayt"),
        (PLATFORM_NAUKRI, "Naukri"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        "authentication.User",
        on_delete=models.CASCADE,
        related_name="campaigns",
    )
    user_email = models.EmailField()
    title = models.CharField(max_length=255, blank=True)
    keywords = models.CharField(max_length=255)
    platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES)
    job_limit = models.PositiveIntegerField(default=10)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    cv_reference = models.CharField(max_length=500, blank=True, null=True)
    cover_letter_reference = models.CharField(max_length=500, blank=True, null=True)

    # Platform-specific search parameters
    location = models.CharField(max_length=255, blank=True)
    cities = models.JSONField(default=list, blank=True)
    city_codes = models.JSONField(default=list, blank=True)
    experience = models.CharField(max_length=20, blank=True)
    freshness = models.CharField(max_length=20, blank=True)
    remote = models.CharField(max_length=20, blank=True)
    sort = models.CharField(max_length=20, blank=True)

    scraper_payload = models.JSONField(default=dict, blank=True)
    scraper_response = models.JSONField(default=dict, blank=True)
    jobs_found = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=Q(status__in=["pending", "processing"]),
                name="one_active_campaign_per_user",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="campaigns_j_user_id_3c8a52_idx"),
        ]

    def __str__(self) -> str:
        return self.title or f"{self.platform}: {self.keywords}"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES
