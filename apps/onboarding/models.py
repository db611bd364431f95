import uuid

from django.db import models


class OnboardingData(models.Model):
    """
    Per-user onboarding progress. Payment completion unlocks the
    remaining onboarding steps.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        "authentication.User",
        on_delete=models.CASCADE,
        related_name="onboarding",
    )
    selected_plan = models.CharField(max_length=50, blank=True, null=True)
    current_step = models.PositiveSmallIntegerField(default=1)
    payment_completed = models.BooleanField(default=False)
    payment_details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Onboarding for {self.user_id}"
