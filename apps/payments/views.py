import logging
from urllib.parse import urlencode

from django.shortcuts import redirect
from rest_framework import exceptions, permissions, status, views, viewsets
from rest_framework.request import Request
from rest_framework.response import Response

from apps.authentication.permissions import is_admin
from core.exceptions import NotFoundError, ServiceError

from . import services
from .config import get_gateway_settings
from .gateways import PayPalGateway, TilopayGateway, get_gateway
from .models import PaymentRecord
from .serializers import (
    FreePlanActivationSerializer,
    InitiatePaymentSerializer,
    PaymentRecordSerializer,
    PayPalCaptureSerializer,
    PayPalPaymentTokenSerializer,
    VerifyPaymentSerializer,
)

logger = logging.getLogger(__name__)


def _frontend_redirect(**params):
    query = urlencode({key: value for key, value in params.items() if value not in (None, "")})
    return redirect(get_gateway_settings().frontend_url(f"onboarding-new?{query}"))


def _outcome_redirect(outcome):
    if outcome.status == PaymentRecord.STATUS_COMPLETED:
        return _frontend_redirect(step=4, payment="success")
    if outcome.status == PaymentRecord.STATUS_ABANDONED:
        return _frontend_redirect(step=3, payment="abandoned")
    if outcome.status == PaymentRecord.STATUS_PENDING:
        return _frontend_redirect(step=3, payment="pending")
    return _frontend_redirect(
        step=3,
        payment="failed",
        message=outcome.message or None,
        error=outcome.failed_step,
    )


def _ensure_owner(request: Request, payment_id) -> None:
    if is_admin(request.user):
        return
    if not PaymentRecord.objects.filter(pk=payment_id, user=request.user).exists():
        raise NotFoundError("Payment record not found")


class InitiatePaymentView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        initiation = services.initiate_payment(
            data["provider"],
            request.user,
            data["amount"],
            data["planName"],
            serializer.payer(),
            currency=data["currency"],
        )
        payment = initiation.payment
        return Response(
            {
                "paymentId": str(payment.id),
                "orderNumber": payment.order_number,
                "provider": payment.provider,
                "initPayload": initiation.init_payload,
            },
            status=status.HTTP_201_CREATED,
        )


class FreePlanActivationView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        serializer = FreePlanActivationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data.get("userId") and data["userId"] != request.user.id:
            raise exceptions.PermissionDenied("User ID mismatch")
        payment = services.activate_free_plan(
            request.user,
            data["planName"],
            final_amount=data["finalAmount"],
            original_amount=data.get("originalAmount"),
            referral_code=data.get("referralCode"),
            discount_percentage=data.get("discountPercentage"),
            email=data.get("email"),
        )
        return Response(
            {
                "success": True,
                "message": "Free plan activated successfully",
                "data": {
                    "userId": str(request.user.id),
                    "planName": payment.plan,
                    "paymentAmount": 0,
                    "referralCode": payment.metadata.get("referralCode"),
                    "discountPercentage": payment.metadata.get("discountPercentage"),
                    "paymentId": str(payment.id),
                    "orderNumber": payment.order_number,
                },
            },
            status=status.HTTP_200_OK,
        )


class VerifyPaymentView(views.APIView):
    """
    Current status of a payment, by ``paymentId`` or ``orderNumber``.

    Customers only see their own payments; admins can look up any record.
    """

    def get(self, request: Request, *args, **kwargs) -> Response:
        serializer = VerifyPaymentSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services.verify_payment(
            payment_id=data.get("paymentId"),
            order_number=data.get("orderNumber"),
            user=None if is_admin(request.user) else request.user,
        )
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class TilopayTokenView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        gateway = get_gateway(TilopayGateway.provider)
        return Response(gateway.get_sdk_token(), status=status.HTTP_200_OK)


class TilopayCallbackView(views.APIView):
    """
    Tilopay reports the result either by redirecting the browser here
    (GET) or by calling the webhook (POST). Both carry the signed
    ``returnData`` issued at initiation.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []
    # Provider webhooks arrive from a handful of addresses.
    throttle_classes: list = []

    def get(self, request: Request, *args, **kwargs):
        try:
            outcome = services.handle_provider_callback(TilopayGateway.provider, request.query_params.dict())
        except ServiceError as exc:
            logger.warning("Tilopay redirect rejected: %s", exc.detail)
            return _frontend_redirect(step=3, payment="error", message=exc.detail)
        return _outcome_redirect(outcome)

    def post(self, request: Request, *args, **kwargs) -> Response:
        outcome = services.handle_provider_callback(TilopayGateway.provider, request.data)
        return Response(
            {
                "success": outcome.succeeded,
                "status": outcome.status,
                "paymentId": str(outcome.payment.id),
                "orderNumber": outcome.payment.order_number,
                "changed": outcome.changed,
            },
            status=status.HTTP_200_OK,
        )


class PayPalCallbackView(views.APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []
    throttle_classes: list = []

    def get(self, request: Request, *args, **kwargs):
        try:
            outcome = services.handle_provider_callback(PayPalGateway.provider, request.query_params.dict())
        except ServiceError as exc:
            logger.warning("PayPal return rejected: %s", exc.detail)
            return _frontend_redirect(step=3, payment="error", message=exc.detail)
        return _outcome_redirect(outcome)


class PayPalPaymentTokenView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        serializer = PayPalPaymentTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        _ensure_owner(request, data["paymentId"])
        gateway = get_gateway(PayPalGateway.provider)
        token_id = gateway.create_payment_token(data["setupTokenId"], data["paymentId"])
        return Response({"paymentTokenId": token_id, "paymentId": str(data["paymentId"])}, status=status.HTTP_200_OK)


class PayPalCaptureView(views.APIView):
    def post(self, request: Request, *args, **kwargs) -> Response:
        serializer = PayPalCaptureSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        _ensure_owner(request, data["paymentId"])
        gateway = get_gateway(PayPalGateway.provider)
        payment = gateway.capture_order(
            data["paymentId"],
            data["paymentTokenId"],
            amount=data.get("amount"),
            currency=data.get("currency"),
        )
        return Response(
            {
                "success": payment.status == PaymentRecord.STATUS_COMPLETED,
                "status": payment.status,
                "paymentId": str(payment.id),
                "captureId": payment.metadata.get("captureId"),
                "orderId": payment.metadata.get("orderId"),
            },
            status=status.HTTP_200_OK,
        )


class PaymentRecordViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = PaymentRecord.objects.select_related("user").all()
    serializer_class = PaymentRecordSerializer
    filterset_fields = ["status", "provider", "plan"]
    ordering_fields = ["created_at", "amount"]

    def get_queryset(self):
        if is_admin(self.request.user):
            return self.queryset
        return self.queryset.filter(user=self.request.user)
