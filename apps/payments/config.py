from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from django.conf import settings

PAYPAL_LIVE_BASE_URL = "https://api-m.paypal.com"
PAYPAL_SANDBOX_BASE_URL = "https://api-m.sandbox.paypal.com"


@dataclass(frozen=True)
class TilopayConfig:
    api_key: str
    api_user: str
    api_password: str
    base_url: str

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_user and self.api_password)


@dataclass(frozen=True)
class PayPalConfig:
    client_id: str
    client_secret: str
    mode: str = "sandbox"

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def base_url(self) -> str:
        return PAYPAL_LIVE_BASE_URL if self.mode == "production" else PAYPAL_SANDBOX_BASE_URL


@dataclass(frozen=True)
class GatewaySettings:
    tilopay: TilopayConfig
    paypal: PayPalConfig
    public_base_url: str
    frontend_base_url: str
    brand_name: str
    timeout: float
    abandon_after: timedelta

    def callback_url(self, path: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{path.lstrip('/')}"

    def frontend_url(self, path: str) -> str:
        return f"{self.frontend_base_url.rstrip('/')}/{path.lstrip('/')}"


@lru_cache(maxsize=1)
def get_gateway_settings() -> GatewaySettings:
    """Provider configuration, read from Django settings once per process."""
    return GatewaySettings(
        tilopay=TilopayConfig(
            api_key=getattr(settings, "TILOPAY_API_KEY", "") or "",
            api_user=getattr(settings, "TILOPAY_API_USER", "") or "",
            api_password=getattr(settings, "TILOPAY_API_PASSWORD", "") or "",
            base_url=getattr(settings, "TILOPAY_BASE_URL", "https://app.tilopay.com/api/v1"),
        ),
        paypal=PayPalConfig(
            client_id=getattr(settings, "PAYPAL_CLIENT_ID", "") or "",
            client_secret=getattr(settings, "PAYPAL_CLIENT_SECRET", "") or "",
            mode=getattr(settings, "PAYPAL_MODE", "sandbox"),
        ),
        public_base_url=getattr(settings, "PUBLIC_BASE_URL", "http://localhost:8000"),
        frontend_base_url=getattr(settings, "FRONTEND_BASE_URL", "http://localhost:3000"),
        brand_name=getattr(settings, "BRAND_NAME", "FALCON Global Consulting"),
        timeout=float(getattr(settings, "OUTBOUND_HTTP_TIMEOUT", 20)),
        abandon_after=timedelta(minutes=int(getattr(settings, "PAYMENT_ABANDON_AFTER_MINUTES", 10))),
    )
