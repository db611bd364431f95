from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from urllib.parse import urlencode

from django.core.exceptions import ValidationError as DjangoValidationError
from django.urls import reverse

from core.exceptions import ConfigurationError, NotFoundError, ProviderError, ValidationError

from .. import ledger
from ..models import PaymentRecord
from .base import CallbackOutcome, PayerDetails, PaymentGateway, PaymentInitiation, ProviderResponse

logger = logging.getLogger(__name__)


def extract_capture_id(capture_body: Any) -> str | None:
    try:
        return capture_body["purchase_units"][0]["payments"]["captures"][0]["id"]
    except (KeyError, IndexError, TypeError):
        return None


class PayPalGateway(PaymentGateway):
    """
    Vault flow: the buyer approves a setup token on PayPal, the callback
    exchanges it for a payment-method token, then an order bound to that
    token is created and captured straight away. A failure at any step
    leaves the record ``failed``; the user has to start a new payment.
    """

    provider = PaymentRecord.PROVIDER_PAYPAL
    order_prefix = "FGC-PP"

    def _require_credentials(self) -> None:
        if not self.config.paypal.is_configured:
            logger.error("PayPal client credentials not configured")
            raise ConfigurationError("Payment system not configured")

    def _url(self, path: str) -> str:
        return f"{self.config.paypal.base_url}{path}"

    def _access_token(self) -> str:
        paypal = self.config.paypal
        resp = self._request(
            "POST",
            self._url("/v1/oauth2/token"),
            auth=(paypal.client_id, paypal.client_secret),
            data={"grant_type": "client_credentials"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        token = resp.body.get("access_token") if isinstance(resp.body, dict) else None
        if not resp.ok or not token:
            raise ProviderError("Failed to obtain PayPal access token", payload={"provider_response": resp.body})
        return token

    def _post(self, path: str, *, access_token: str, request_id: str, payload: dict | None = None) -> ProviderResponse:
        return self._request(
            "POST",
            self._url(path),
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {access_token}",
                "PayPal-Request-Id": request_id,
            },
        )

    def _fail_step(self, payment: PaymentRecord, step: str, exc: ProviderError) -> None:
        ledger.fail_payment(
            payment.pk,
            metadata={
                "failedStep": step,
                "error": exc.detail,
                "errorDetails": exc.payload.get("provider_response", exc.payload),
            },
        )

    def initiate(
        self,
        user,
        *,
        amount: Decimal,
        plan: str,
        payer: PayerDetails,
        currency: str = "USD",
    ) -> PaymentInitiation:
        if not payer.email:
            raise ValidationError("Missing required fields: email")
        self._require_credentials()

        payment = ledger.create_pending_payment(
            user=user,
            provider=self.provider,
            plan=plan,
            amount=amount,
            currency=currency,
            order_prefix=self.order_prefix,
            metadata={
                "email": payer.email,
                "firstName": payer.first_name,
                "lastName": payer.last_name,
                "address": payer.address,
                "city": payer.city,
                "state": payer.state,
                "country": payer.country,
                "phone": payer.phone,
                "paymentType": "recurring",
            },
        )

        query = urlencode({"paymentId": str(payment.id), "orderNumber": payment.order_number})
        return_url = f"{self.config.callback_url(reverse('paypal-callback'))}?{query}"
        cancel_url = self.config.frontend_url("onboarding-new?step=3&payment=cancelled")
        value = str(amount)
        brand = self.config.brand_name
        setup_payload = {
            "payment_source": {
                "paypal": {
                    "description": f"{plan} Plan - {brand}",
                    "usage_pattern": "RECURRING",
                    "usage_type": "MERCHANT",
                    "customer_type": "CONSUMER",
                    "permit_multiple_payment_tokens": False,
                    "billing_plan": {
                        "name": f"{plan} Subscription",
                        "description": f"Monthly subscription for {plan} plan",
                        "billing_cycles": [
                            {
                                "frequency": {"interval_unit": "MONTH", "interval_count": 1},
                                "tenure_type": "REGULAR",
                                "sequence": 1,
                                "total_cycles": 12,
                                "pricing_scheme": {
                                    "fixed_price": {"value": value, "currency_code": currency},
                                },
                            }
                        ],
                        "payment_preferences": {
                            "auto_bill_outstanding": True,
                            "setup_fee": {"value": value, "currency_code": currency},
                            "setup_fee_failure_action": "CANCEL",
                            "payment_failure_threshold": 3,
                        },
                    },
                    "experience_context": {
                        "payment_method_preference": "IMMEDIATE_PAYMENT_REQUIRED",
                        "brand_name": brand,
                        "locale": "en-US",
                        "return_url": return_url,
                        "cancel_url": cancel_url,
                    },
                }
            }
        }

        try:
            access_token = self._access_token()
            resp = self._post(
                "/v3/vault/setup-tokens",
                access_token=access_token,
                request_id=payment.order_number,
                payload=setup_payload,
            )
            if not resp.ok:
                raise ProviderError("Failed to create PayPal setup token", payload={"provider_response": resp.body})
        except ProviderError as exc:
            self._fail_step(payment, "setup_token", exc)
            raise

        setup_token = resp.body
        payment = ledger.update_pending(
            payment.pk,
            metadata={"setupTokenId": setup_token.get("id"), "setupTokenStatus": setup_token.get("status")},
        )
        approval_url = next(
            (link.get("href") for link in setup_token.get("links", []) if link.get("rel") == "approve"),
            None,
        )
        return PaymentInitiation(
            payment=payment,
            init_payload={
                "setupTokenId": setup_token.get("id"),
                "approvalUrl": approval_url,
                "orderNumber": payment.order_number,
            },
        )

    def create_payment_token(self, setup_token_id: str, payment_id: Any) -> str:
        """Exchange an approved setup token for a reusable payment-method token."""
        if not setup_token_id or not payment_id:
            raise ValidationError("Missing required fields: setupTokenId, paymentId")
        self._require_credentials()
        payment = self._get_pending(payment_id)

        try:
            access_token = self._access_token()
            resp = self._post(
                "/v3/vault/payment-tokens",
                access_token=access_token,
                request_id=f"{payment.order_number}-token",
                payload={"payment_source": {"token": {"id": setup_token_id, "type": "SETUP_TOKEN"}}},
            )
            if not resp.ok or not isinstance(resp.body, dict) or not resp.body.get("id"):
                raise ProviderError("Failed to create PayPal payment token", payload={"provider_response": resp.body})
        except ProviderError as exc:
            self._fail_step(payment, "payment_token", exc)
            raise

        token = resp.body
        ledger.update_pending(
            payment.pk,
            transaction_id=token["id"],
            provider_reference=token["id"],
            metadata={
                "paymentTokenId": token["id"],
                "paymentTokenStatus": token.get("status"),
                "customerId": (token.get("customer") or {}).get("id"),
                "paymentSourceDetails": token.get("payment_source"),
            },
        )
        return token["id"]

    def capture_order(
        self,
        payment_id: Any,
        payment_token_id: str,
        amount: Decimal | str | None = None,
        currency: str | None = None,
    ) -> PaymentRecord:
        """Create an order against the payment-method token and capture it."""
        if not payment_id or not payment_token_id:
            raise ValidationError("Missing required fields: paymentId, paymentTokenId")
        self._require_credentials()

        payment = self._get(payment_id)
        if payment.status == PaymentRecord.STATUS_COMPLETED:
            return payment
        if payment.status != PaymentRecord.STATUS_PENDING:
            raise ValidationError(f"Payment is {payment.status}", payload={"status": payment.status})

        if amount is not None:
            try:
                requested = Decimal(str(amount))
            except InvalidOperation as exc:
                raise ValidationError("Invalid amount") from exc
            if requested != payment.amount:
                raise ValidationError("Amount does not match payment record")
        if currency and currency != payment.currency:
            raise ValidationError("Currency does not match payment record")

        known_token = payment.metadata.get("paymentTokenId")
        if known_token and known_token != payment_token_id:
            raise ValidationError("Payment token does not match payment record")

        order_payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": payment.currency, "value": str(payment.amount)},
                    "description": f"{payment.plan} Plan - {self.config.brand_name}",
                    "custom_id": payment.order_number,
                    "invoice_id": payment.order_number,
                }
            ],
            "payment_source": {"token": {"id": payment_token_id, "type": "PAYMENT_METHOD_TOKEN"}},
            "application_context": {"brand_name": self.config.brand_name, "user_action": "PAY_NOW"},
        }

        step = "create_order"
        try:
            access_token = self._access_token()
            order_resp = self._post(
                "/v2/checkout/orders",
                access_token=access_token,
                request_id=f"{payment.order_number}-capture",
                payload=order_payload,
            )
            order_id = order_resp.body.get("id") if isinstance(order_resp.body, dict) else None
            if not order_resp.ok or not order_id:
                raise ProviderError("Failed to create PayPal order", payload={"provider_response": order_resp.body})

            step = "capture"
            capture_resp = self._post(
                f"/v2/checkout/orders/{order_id}/capture",
                access_token=access_token,
                request_id=f"{payment.order_number}-capture-confirm",
            )
            if not capture_resp.ok:
                raise ProviderError("Failed to capture PayPal payment", payload={"provider_response": capture_resp.body})
            capture_id = extract_capture_id(capture_resp.body)
            if not capture_id:
                raise ProviderError("No capture ID returned from PayPal", payload={"provider_response": capture_resp.body})
        except ProviderError as exc:
            self._fail_step(payment, step, exc)
            raise

        payment, _ = ledger.complete_payment(
            payment.pk,
            transaction_id=capture_id,
            metadata={"captureId": capture_id, "orderId": order_id, "paymentTokenId": payment_token_id},
            onboarding_details={"paymentMethod": self.provider, "paymentTokenId": payment_token_id},
        )
        return payment

    def apply_callback(self, data: Mapping[str, Any]) -> CallbackOutcome:
        data = self._callback_fields(data)
        setup_token_id = data.get("token")
        payment_id = data.get("paymentId")
        if not setup_token_id or not payment_id:
            raise ValidationError("Missing required parameters")

        payment = self._get(payment_id)
        order_number = data.get("orderNumber")
        if order_number and order_number != payment.order_number:
            raise ValidationError("Order reference does not match payment")
        known_setup_token = payment.metadata.get("setupTokenId")
        if known_setup_token and known_setup_token != setup_token_id:
            raise ValidationError("Setup token does not match payment")

        if payment.status != PaymentRecord.STATUS_PENDING:
            return CallbackOutcome(payment=payment, status=payment.status, changed=False)

        try:
            payment_token_id = self.create_payment_token(setup_token_id, payment.pk)
        except ProviderError as exc:
            payment.refresh_from_db()
            return CallbackOutcome(payment=payment, status=payment.status, changed=True, message=exc.detail, failed_step="token_creation")

        try:
            payment = self.capture_order(payment.pk, payment_token_id)
        except ProviderError as exc:
            payment.refresh_from_db()
            return CallbackOutcome(payment=payment, status=payment.status, changed=True, message=exc.detail, failed_step="capture")

        return CallbackOutcome(payment=payment, status=payment.status, changed=True)

    def verification_details(self, payment: PaymentRecord) -> dict[str, Any]:
        return {
            "paypalReference": payment.provider_reference,
            "captureId": payment.metadata.get("captureId"),
            "orderId": payment.metadata.get("orderId"),
        }

    def _get(self, payment_id: Any) -> PaymentRecord:
        try:
            return PaymentRecord.objects.get(pk=payment_id, provider=self.provider)
        except (PaymentRecord.DoesNotExist, DjangoValidationError, ValueError) as exc:
            raise NotFoundError("Payment record not found") from exc

    def _get_pending(self, payment_id: Any) -> PaymentRecord:
        payment = self._get(payment_id)
        if payment.status != PaymentRecord.STATUS_PENDING:
            raise ValidationError(f"Payment is {payment.status}", payload={"status": payment.status})
        return payment
