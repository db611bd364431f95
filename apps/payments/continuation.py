"""
Correlation data carried through the provider's browser redirect.

The blob is a ``django.core.signing`` token: URL-safe base64 JSON plus an
HMAC over ``SECRET_KEY``, so a callback cannot swap in another user's
payment id.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from django.core import signing

from core.exceptions import ValidationError

SALT = "apps.payments.continuation"
MAX_AGE = timedelta(days=2)


@dataclass(frozen=True)
class Continuation:
    user_id: str
    payment_id: str
    plan: str


def encode_continuation(continuation: Continuation) -> str:
    return signing.dumps(
        {
            "userId": continuation.user_id,
            "paymentId": continuation.payment_id,
            "planName": continuation.plan,
        },
        salt=SALT,
    )


def decode_continuation(blob: str) -> Continuation:
    try:
        data = signing.loads(blob, salt=SALT, max_age=MAX_AGE)
    except signing.SignatureExpired as exc:
        raise ValidationError("Continuation data has expired.") from exc
    except signing.BadSignature as exc:
        raise ValidationError("Continuation data failed integrity check.") from exc

    if not isinstance(data, dict) or not data.get("userId") or not data.get("paymentId"):
        raise ValidationError("Continuation data is incomplete.")
    return Continuation(
        user_id=str(data["userId"]),
        payment_id=str(data["paymentId"]),
        plan=str(data.get("planName") or ""),
    )
