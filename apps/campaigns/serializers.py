from rest_framework import serializers

from .models import JobCampaign


class JobCampaignSerializer(serializers.ModelSerializer):
    class Meta:
        model = JobCampaign
        fields = [
            "id",
            "user",
            "user_email",
            "title",
            "keywords",
            "platform",
            "job_limit",
            "status",
            "cv_reference",
            "cover_letter_reference",
            "location",
            "cities",
            "city_codes",
            "experience",
            "freshness",
            "remote",
            "sort",
            "scraper_payload",
            "scraper_response",
            "jobs_found",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "user",
            "user_email",
            "keywords",
            "platform",
            "job_limit",
            "cv_reference",
            "cover_letter_reference",
            "location",
            "cities",
            "city_codes",
            "experience",
            "freshness",
            "remote",
            "sort",
            "scraper_payload",
            "created_at",
            "updated_at",
        ]


class CampaignRequestSerializer(serializers.Serializer):
    platform = serializers.ChoiceField(choices=[choice for choice, _ in JobCampaign.PLATFORM_CHOICES])
    keywords = serializers.CharField(max_length=255)
    title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    email = serializers.EmailField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    remote = serializers.CharField(max_length=20, required=False, allow_blank=True)
    sort = serializers.CharField(max_length=20, required=False, allow_blank=True)
    cities = serializers.ListField(child=serializers.CharField(), required=False)
    experience = serializers.CharField(max_length=20, required=False, allow_blank=True)
    freshness = serializers.CharField(max_length=20, required=False, allow_blank=True)
    baseUrl = serializers.URLField(required=False)
    includeNoSalaryJob = serializers.BooleanField(required=False)
    remoteWorkType = serializers.BooleanField(required=False)
    cvId = serializers.CharField(max_length=500, required=False, allow_blank=True)
    coverLetterId = serializers.CharField(max_length=500, required=False, allow_blank=True)
