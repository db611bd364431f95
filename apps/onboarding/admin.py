from django.contrib import admin

from .models import OnboardingData


@admin.register(OnboardingData)
class OnboardingDataAdmin(admin.ModelAdmin):
    list_display = ("user", "selected_plan", "current_step", "payment_completed", "updated_at")
    list_filter = ("payment_completed",)
    search_fields = ("user__email",)
