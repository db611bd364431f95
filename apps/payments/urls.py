from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import (
    FreePlanActivationView,
    InitiatePaymentView,
    PaymentRecordViewSet,
    PayPalCallbackView,
    PayPalCaptureView,
    PayPalPaymentTokenView,
    TilopayCallbackView,
    TilopayTokenView,
    VerifyPaymentView,
)

router = DefaultRouter()
router.register("records", PaymentRecordViewSet, basename="payment-record")

urlpatterns = [
    path("initiate/", InitiatePaymentView.as_view(), name="payment-initiate"),
    path("verify/", VerifyPaymentView.as_view(), name="payment-verify"),
    path("free-plan/", FreePlanActivationView.as_view(), name="free-plan-activation"),
    path("tilopay/token/", TilopayTokenView.as_view(), name="tilopay-token"),
    path("tilopay/callback/", TilopayCallbackView.as_view(), name="tilopay-callback"),
    path("paypal/callback/", PayPalCallbackView.as_view(), name="paypal-callback"),
    path("paypal/payment-token/", PayPalPaymentTokenView.as_view(), name="paypal-payment-token"),
    path("paypal/capture/", PayPalCaptureView.as_view(), name="paypal-capture"),
] + router.urls
