from rest_framework import status, views
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import BulkSendSerializer
from .services import DispatchCredentials, dispatch_bulk_applications


class BulkSendView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        serializer = BulkSendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = dispatch_bulk_applications(
            data["jobIds"],
            data["email"],
            DispatchCredentials(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                gmail_account_id=data["gmailAccountId"],
            ),
            cv_ref=data.get("cvId") or None,
            cover_letter_ref=data.get("coverLetterId") or None,
            user_id=request.user.id,
        )
        return Response(
            {
                "success": result.accepted,
                "message": f"Bulk send initiated for {len(data['jobIds'])} jobs",
                "data": result.sink_response,
            },
            status=status.HTTP_200_OK,
        )
