from rest_framework import status, views
from rest_framework.request import Request
from rest_framework.response import Response

from core.exceptions import ValidationError

from .resolver import DOCUMENT_BUCKETS, list_user_documents


class DocumentListView(views.APIView):
    def get(self, request: Request, *args, **kwargs) -> Response:
        bucket = request.query_params.get("bucket")
        if bucket not in DOCUMENT_BUCKETS:
            raise ValidationError('Invalid bucket name. Must be "cvs" or "cover-letters"')
        files = list_user_documents(request.user.id, bucket)
        return Response({"success": True, "files": files}, status=status.HTTP_200_OK)
