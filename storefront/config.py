import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
from typing import Dict, List, Optional

from dotenv import load_dotenv


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    tax_rate: Decimal
    order_number_attempts: int


ALLOWED_HOT_KEYS = {"CURRENCY", "TAX_RATE"}
SENSITIVE_KEYS = {"DATABASE_URL", "SECRET_KEY", "STOREFRONT_ADMIN_PASS"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "INR").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_tax_rate(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.18")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid tax rate: {value!r}")
    if rate < 0 or rate >= 1:
        raise ValueError("Invalid tax rate: expected 0 <= rate < 1")
    return rate


def validate_attempts(value) -> int:
    attempts = int(value or 3)
    if attempts < 1:
        raise ValueError("ORDER_NUMBER_ATTEMPTS must be >= 1")
    return attempts


def _load_settings_file() -> dict:
    path = Path(__file__).resolve().parents[1] / "data" / "settings.json"
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return {}


def _pick(settings: dict, key: str):
    """settings.json 優先；只有缺少或為 None 時才改讀環境變數"""
    value = settings.get(key)
    return value if value is not None else os.getenv(key)


def load_env() -> AppConfig:
    # 設定以 data/settings.json 為主，.env 為後備
    load_dotenv()
    s = _load_settings_file()
    return AppConfig(
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/app.db"),
        secret_key=os.getenv("SECRET_KEY", "dev_secret"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        currency=validate_currency(_pick(s, "CURRENCY")),
        tax_rate=validate_tax_rate(_pick(s, "TAX_RATE")),
        order_number_attempts=validate_attempts(os.getenv("ORDER_NUMBER_ATTEMPTS")),
    )


def refresh_non_sensitive(overrides: Dict[str, str], current: AppConfig) -> AppConfig:
    updates = {k: v for k, v in (overrides or {}).items() if k in ALLOWED_HOT_KEYS}
    return replace(
        current,
        currency=validate_currency(updates.get("CURRENCY", current.currency)),
        tax_rate=validate_tax_rate(updates.get("TAX_RATE", current.tax_rate)),
    )


def requires_restart(changed_keys: List[str]) -> bool:
    if not changed_keys:
        return False
    return any(k in SENSITIVE_KEYS for k in changed_keys)
