from __future__ import annotations

from core.exceptions import ValidationError

from ..config import GatewaySettings, get_gateway_settings
from .base import CallbackOutcome, PayerDetails, PaymentGateway, PaymentInitiation
from .paypal import PayPalGateway
from .tilopay import TilopayGateway

GATEWAYS: dict[str, type[PaymentGateway]] = {
    TilopayGateway.provider: TilopayGateway,
    PayPalGateway.provider: PayPalGateway,
}

PROVIDER_ALIASES = {
    "gateway_a": TilopayGateway.provider,
    "gateway_b": PayPalGateway.provider,
}


def normalize_provider(provider: str) -> str:
    name = (provider or "").strip().lower()
    name = PROVIDER_ALIASES.get(name, name)
    if name not in GATEWAYS:
        raise ValidationError(f"Unknown payment provider: {provider}")
    return name


def get_gateway(provider: str, config: GatewaySettings | None = None) -> PaymentGateway:
    return GATEWAYS[normalize_provider(provider)](config or get_gateway_settings())


__all__ = [
    "CallbackOutcome",
    "PayerDetails",
    "PaymentGateway",
    "PaymentInitiation",
    "PayPalGateway",
    "TilopayGateway",
    "get_gateway",
    "normalize_provider",
]
