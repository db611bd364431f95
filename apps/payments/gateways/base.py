from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

import requests

from core.exceptions import ProviderError, ValidationError

from ..config import GatewaySettings
from ..models import PaymentRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayerDetails:
    email: str
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = "CR"
    phone: str = ""


@dataclass(frozen=True)
class PaymentInitiation:
    payment: PaymentRecord
    init_payload: dict[str, Any]


@dataclass(frozen=True)
class CallbackOutcome:
    payment: PaymentRecord
    status: str
    changed: bool
    message: str = ""
    failed_step: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentRecord.STATUS_COMPLETED


@dataclass(frozen=True)
class ProviderResponse:
    status_code: int
    body: Any = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PaymentGateway(ABC):
    """
    Provider adapter: ``initiate`` creates the pending record and the data
    the client needs to reach the provider, ``apply_callback`` resolves the
    provider's answer into a terminal state, ``verification_details``
    exposes provider references on verify.
    """

    provider: str
    order_prefix: str

    def __init__(self, config: GatewaySettings) -> None:
        self.config = config

    @abstractmethod
    def initiate(
        self,
        user,
        *,
        amount: Decimal,
        plan: str,
        payer: PayerDetails,
        currency: str = "USD",
    ) -> PaymentInitiation:
        ...

    @abstractmethod
    def apply_callback(self, data: Mapping[str, Any]) -> CallbackOutcome:
        ...

    @staticmethod
    def _callback_fields(data: Any) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise ValidationError("Malformed callback payload")
        return data

    def verification_details(self, payment: PaymentRecord) -> dict[str, Any]:
        return {"providerReference": payment.provider_reference}

    def _request(self, method: str, url: str, **kwargs: Any) -> ProviderResponse:
        """Perform an outbound call, folding transport errors into ``ProviderError``."""
        kwargs.setdefault("timeout", self.config.timeout)
        try:
            resp = requests.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s request to %s failed: %s", self.provider, url, exc)
            raise ProviderError(
                f"Failed to contact {self.provider}.",
                payload={"error": str(exc)},
            ) from exc
        return ProviderResponse(status_code=resp.status_code, body=_parse_body(resp))


def _parse_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"message": resp.text}
