from django.contrib import admin

from .models import JobCampaign


@admin.register(JobCampaign)
class JobCampaignAdmin(admin.ModelAdmin):
    list_display = ("title", "user_email", "platform", "status", "jobs_found", "created_at")
    list_filter = ("platform", "status")
    search_fields = ("title", "keywords", "user_email")
    readonly_fields = ("scraper_payload", "scraper_response", "created_at", "updated_at")
