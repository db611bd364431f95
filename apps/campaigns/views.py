from django.db import IntegrityError
from rest_framework import status, viewsets
from rest_framework.request import Request
from rest_framework.response import Response

from apps.authentication.permissions import is_admin
from core.exceptions import ConflictError

from . import services
from .models import JobCampaign
from .serializers import CampaignRequestSerializer, JobCampaignSerializer


class JobCampaignViewSet(viewsets.ModelViewSet):
    """
    Campaign requests for the current user. ``create`` goes through
    admission control; ``partial_update`` is how the scraping workflow
    reports progress.
    """

    queryset = JobCampaign.objects.all()
    serializer_class = JobCampaignSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]
    filterset_fields = ["platform", "status"]
    search_fields = ["title", "keywords"]
    ordering_fields = ["created_at", "updated_at"]

    def get_queryset(self):
        if is_admin(self.request.user):
            return self.queryset
        return self.queryset.filter(user=self.request.user)

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = CampaignRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = dict(serializer.validated_data)
        campaign = services.request_campaign(request.user, params.pop("platform"), params)
        return Response(JobCampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        try:
            serializer.save()
        except IntegrityError as exc:
            raise ConflictError("User already has an active campaign.") from exc
