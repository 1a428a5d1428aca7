import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration, read once from the environment.

    Passed explicitly into the verifier, ledger and payout calls so that
    test/live payment mode never leaks between concurrent requests.
    """
    razorpay_key_id: str = ""
    razorpay_secret_key: str = ""
    razorpay_webhook_secret: str = ""
    payment_mode: str = "test"  # test, live
    internal_api_key: str = "insecure-default-change-me"

    razorpay_api_url: str = "https://api.razorpay.com/v1"
    gateway_timeout_seconds: float = 10.0
    currency: str = "INR"

    platform_fee_rate: Decimal = Decimal("0.039")
    payout_eligibility_days: int = 7
    payout_cron: str = "0 2 * * 1"

    ledger_compensation_retries: int = 3
    ledger_compensation_delay: float = 0.2

    email_api_url: str = "https://api.resend.com/emails"
    email_api_key: str = ""
    email_from: str = "ShopZap <payouts@shopzap.io>"
    email_timeout_seconds: float = 5.0

    @property
    def is_test_mode(self) -> bool:
        return self.payment_mode != "live"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_secret_key=os.getenv("RAZORPAY_SECRET_KEY", ""),
            razorpay_webhook_secret=os.getenv("RAZORPAY_WEBHOOK_SECRET", ""),
            payment_mode=os.getenv("PAYMENT_MODE", "test").lower(),
            internal_api_key=os.getenv("INTERNAL_API_KEY") or "insecure-default-change-me",
            razorpay_api_url=os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            currency=os.getenv("CURRENCY", "INR").upper(),
            platform_fee_rate=Decimal(os.getenv("PLATFORM_FEE_RATE", "0.039")),
            payout_eligibility_days=int(os.getenv("PAYOUT_ELIGIBILITY_DAYS", "7")),
            payout_cron=os.getenv("PAYOUT_CRON", "0 2 * * 1"),
            ledger_compensation_retries=int(os.getenv("LEDGER_COMPENSATION_RETRIES", "3")),
            ledger_compensation_delay=float(os.getenv("LEDGER_COMPENSATION_DELAY", "0.2")),
            email_api_url=os.getenv("EMAIL_API_URL", "https://api.resend.com/emails"),
            email_api_key=os.getenv("EMAIL_API_KEY", ""),
            email_from=os.getenv("EMAIL_FROM", "ShopZap <payouts@shopzap.io>"),
            email_timeout_seconds=float(os.getenv("EMAIL_TIMEOUT_SECONDS", "5")),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


OTEL_ENABLED = _env_bool("OTEL_ENABLED", True)
METRICS_ENABLED = _env_bool("METRICS_ENABLED", True)
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "20/minute")
