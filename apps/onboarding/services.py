from __future__ import annotations

import logging
from typing import Any

from django.utils import timezone

from .models import OnboardingData

logger = logging.getLogger(__name__)

# Step 4 (call scheduling) follows a successful payment.
POST_PAYMENT_STEP = 4


def record_payment_completed(user_id: Any, details: dict[str, Any]) -> OnboardingData:
    """
    Mark the user's onboarding payment step as done and store the
    payment summary shown on the dashboard.
    """
    payment_details = {**details, "timestamp": timezone.now().isoformat()}
    onboarding, created = OnboardingData.objects.get_or_create(
        user_id=user_id,
        defaults={
            "payment_completed": True,
            "payment_details": payment_details,
            "selected_plan": details.get("plan"),
            "current_step": POST_PAYMENT_STEP,
        },
    )
    if not created:
        onboarding.payment_completed = True
        onboarding.payment_details = payment_details
        onboarding.selected_plan = details.get("plan") or onboarding.selected_plan
        onboarding.current_step = max(onboarding.current_step, POST_PAYMENT_STEP)
        onboarding.save(update_fields=["payment_completed", "payment_details", "selected_plan", "current_step", "updated_at"])
    logger.info("Onboarding payment step completed for user %s", user_id)
    return onboarding
