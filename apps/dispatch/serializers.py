from rest_framework import serializers


class BulkSendSerializer(serializers.Serializer):
    # Ids are forwarded as given; the sink matches numeric ids by type.
    jobIds = serializers.ListField(child=serializers.JSONField(), allow_empty=False)
    email = serializers.EmailField()
    accessToken = serializers.CharField()
    refreshToken = serializers.CharField()
    gmailAccountId = serializers.CharField(required=False, allow_blank=True, default="")
    cvId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    coverLetterId = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_jobIds(self, value):
        for job_id in value:
            if isinstance(job_id, bool) or not isinstance(job_id, (str, int, float)):
                raise serializers.ValidationError("Job IDs must be strings or numbers.")
            if isinstance(job_id, str) and not job_id.strip():
                raise serializers.ValidationError("Job IDs must not be blank.")
        return value
