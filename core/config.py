# ==================================================================================
# core/config.py — Payment Service Configuration (Stripe + SendGrid + Pydantic v2)
# ==================================================================================
import json
import sys
from typing import Dict, List, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: str = "sqlite:///./payments.db"

    # ------------------------
    # STRIPE / PAYMENT CONFIG
    # ------------------------
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds

    # Plan ids that grant paid access levels
    STRIPE_PRICE_BASIC_PLAN_ID: Optional[str] = None
    STRIPE_PRICE_PREMIUM_PLAN_ID: Optional[str] = None
    # Extra price -> tier pairs, JSON encoded: {"price_123": "enterprise"}
    STRIPE_PLAN_TIERS: Optional[str] = None

    # ------------------------
    # AUDIT / NOTIFICATION SINKS
    # ------------------------
    LOGGING_SERVICE_URL: Optional[str] = None
    NOTIFICATION_SERVICE_URL: Optional[str] = None
    SINK_TIMEOUT_SECONDS: float = 5.0

    # ------------------------
    # SENDGRID EMAIL CONFIG
    # ------------------------
    SENDGRID_API_KEY: Optional[str] = None
    MAIL_FROM: Optional[str] = None

    # ------------------------
    # FRONTEND & BACKEND CONFIG
    # ------------------------
    FRONTEND_URL: str = "http://localhost:3000"
    APP_BASE_URL: str = "http://localhost:8000"
    ALLOWED_ORIGINS: str = "*"

    @property
    def STRIPE_SUCCESS_URL(self) -> str:
        """Checkout success page, Stripe fills in the session id."""
        return f"{self.FRONTEND_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def STRIPE_CANCEL_URL(self) -> str:
        return f"{self.FRONTEND_URL}/payment/cancel"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def PLAN_TIERS(self) -> Dict[str, str]:
        """
        Static plan id -> access level table used by subscription sync.
        Unknown plan ids are not listed here and resolve to "free".
        """
        tiers: Dict[str, str] = {}
        if self.STRIPE_PLAN_TIERS:
            tiers.update(json.loads(self.STRIPE_PLAN_TIERS))
        if self.STRIPE_PRICE_BASIC_PLAN_ID:
            tiers[self.STRIPE_PRICE_BASIC_PLAN_ID] = "basic"
        if self.STRIPE_PRICE_PREMIUM_PLAN_ID:
            tiers[self.STRIPE_PRICE_PREMIUM_PLAN_ID] = "premium"
        return tiers

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # ------------------------
    # Pydantic v2 Settings
    # ------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# ------------------------
# Global Settings Loader
# ------------------------
try:
    settings = Settings()
except ValidationError as e:
    print("❌ Environment configuration error — missing or invalid settings!")
    print(e)
    sys.exit(1)
