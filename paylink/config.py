import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    stripe_api_version: Optional[str]
    payment_link_base_url: str
    settlement_currency: str
    log_level: str
    log_json: bool


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        stripe_api_version=os.getenv("STRIPE_API_VERSION") or None,
        payment_link_base_url=os.getenv("PAYMENT_LINK_BASE_URL", "https://pay.example").rstrip("/"),
        settlement_currency=os.getenv("SETTLEMENT_CURRENCY", "usd").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=_flag(os.getenv("LOG_JSON"), True),
    )
