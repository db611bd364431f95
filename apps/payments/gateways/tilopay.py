from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping

from django.core.exceptions import ValidationError as DjangoValidationError
from django.urls import reverse
from django.utils import timezone

from core.exceptions import ConfigurationError, NotFoundError, ProviderError, ValidationError

from .. import ledger
from ..continuation import Continuation, decode_continuation, encode_continuation
from ..models import PaymentRecord
from .base import CallbackOutcome, PayerDetails, PaymentGateway, PaymentInitiation

logger = logging.getLogger(__name__)

APPROVED_CODES = {"approved", "1"}
PENDING_CODES = {"pending", "2"}

# Card details echoed back by the SDK that are kept for the onboarding summary.
CARD_FIELDS = ("authCode", "brand", "last4", "payment_method")


def map_status(code: Any) -> str:
    normalized = str(code if code is not None else "").strip().lower()
    if normalized in APPROVED_CODES:
        return PaymentRecord.STATUS_COMPLETED
    if normalized in PENDING_CODES:
        return PaymentRecord.STATUS_PENDING
    return PaymentRecord.STATUS_FAILED


class TilopayGateway(PaymentGateway):
    """
    Hosted SDK flow: the browser runs the provider's SDK with the payload
    from ``initiate`` and the provider reports back to our callback, either
    as a redirect or as a server webhook.
    """

    provider = PaymentRecord.PROVIDER_TILOPAY
    order_prefix = "FGC"

    def _require_credentials(self) -> None:
        if not self.config.tilopay.is_configured:
            logger.error("Tilopay API credentials not configured")
            raise ConfigurationError("Payment system not configured")

    def get_sdk_token(self) -> dict[str, Any]:
        self._require_credentials()
        tilopay = self.config.tilopay
        resp = self._request(
            "POST",
            f"{tilopay.base_url.rstrip('/')}/loginSdk",
            json={
                "apiuser": tilopay.api_user,
                "password": tilopay.api_password,
                "key": tilopay.api_key,
            },
        )
        body = resp.body if isinstance(resp.body, dict) else {}
        if not resp.ok or not body.get("access_token"):
            raise ProviderError("Failed to get SDK token", payload={"provider_response": resp.body})
        return {
            "token": body["access_token"],
            "token_type": body.get("token_type"),
            "expires_in": body.get("expires_in"),
        }

    def initiate(
        self,
        user,
        *,
        amount: Decimal,
        plan: str,
        payer: PayerDetails,
        currency: str = "USD",
    ) -> PaymentInitiation:
        if not (payer.email and payer.first_name and payer.last_name):
            raise ValidationError("Missing required fields: email, firstName, lastName")
        self._require_credentials()

        sdk_token = self.get_sdk_token()
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
                "planName": plan,
            },
        )

        return_data = encode_continuation(
            Continuation(user_id=str(user.id), payment_id=str(payment.id), plan=plan)
        )
        init_payload = {
            "token": sdk_token["token"],
            "currency": currency,
            "language": "en",
            "amount": float(amount),
            "billToFirstName": payer.first_name,
            "billToLastName": payer.last_name,
            "billToAddress": payer.address or "N/A",
            "billToAddress2": "",
            "billToCity": payer.city or "N/A",
            "billToState": payer.state or "",
            "billToZipPostCode": "",
            "billToCountry": payer.country or "CR",
            "billToTelephone": payer.phone or "",
            "billToEmail": payer.email,
            "orderNumber": payment.order_number,
            "capture": 1,
            "redirect": self.config.callback_url(reverse("tilopay-callback")),
            "subscription": 0,
            "hashVersion": "V2",
            "returnData": return_data,
        }
        return PaymentInitiation(payment=payment, init_payload=init_payload)

    def apply_callback(self, data: Mapping[str, Any]) -> CallbackOutcome:
        data = self._callback_fields(data)
        return_data = data.get("returnData")
        if not return_data:
            raise ValidationError("Missing returnData")
        continuation = decode_continuation(str(return_data))

        try:
            payment = PaymentRecord.objects.get(pk=continuation.payment_id, provider=self.provider)
        except (PaymentRecord.DoesNotExist, DjangoValidationError) as exc:
            raise NotFoundError("Payment not found") from exc
        if str(payment.user_id) != continuation.user_id:
            raise ValidationError("Continuation data does not match payment")

        order_ref = data.get("order") or data.get("orderNumber")
        if order_ref and str(order_ref) != payment.order_number:
            raise ValidationError("Order reference does not match payment")

        status = map_status(data.get("status"))
        message = str(data.get("message") or "")
        logger.info("Tilopay callback for %s: %s", payment.order_number, status)

        if status == PaymentRecord.STATUS_PENDING:
            return CallbackOutcome(payment=payment, status=payment.status, changed=False, message=message)

        transaction_id = data.get("transaction_id") or data.get("transaction_code")
        callback_data = {key: value for key, value in data.items() if key != "returnData"}
        metadata = {"callback": callback_data, "processedAt": timezone.now().isoformat()}

        if status == PaymentRecord.STATUS_COMPLETED:
            card = {key: data.get(key) for key in CARD_FIELDS if data.get(key)}
            payment, changed = ledger.complete_payment(
                payment.pk,
                transaction_id=transaction_id,
                provider_reference=order_ref or payment.order_number,
                metadata=metadata,
                onboarding_details={
                    "paymentMethod": card.get("payment_method") or card.get("brand") or self.provider,
                    "last4": card.get("last4"),
                    "authCode": card.get("authCode"),
                },
            )
        else:
            payment, changed = ledger.fail_payment(
                payment.pk,
                transaction_id=transaction_id,
                provider_reference=order_ref or payment.order_number,
                metadata={**metadata, "failedStep": "provider", "providerMessage": message},
            )
        return CallbackOutcome(payment=payment, status=payment.status, changed=changed, message=message)

    def verification_details(self, payment: PaymentRecord) -> dict[str, Any]:
        return {"tilopayReference": payment.provider_reference}
