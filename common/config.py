import os
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Optional

from dotenv import load_dotenv


DEFAULT_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
DELETE_POLICIES = {"block", "detach"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


@dataclass
class AppConfig:
    database_url: str
    log_level: str
    currency: str
    cart_cookie_name: str = "cart_session_id"
    cart_cookie_max_age: int = DEFAULT_COOKIE_MAX_AGE
    cart_cookie_secure: bool = False
    category_delete_policy: str = "block"


def validate_currency(value: Optional[str]) -> str:
    v = (value or "VND").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_delete_policy(value: Optional[str]) -> str:
    v = (value or "block").strip().lower()
    if v not in DELETE_POLICIES:
        raise ValueError(f"Invalid CATEGORY_DELETE_POLICY: {value!r}")
    return v


def validate_log_level(value: Optional[str]) -> str:
    v = (value or "INFO").strip().upper()
    return v if v in LOG_LEVELS else "INFO"


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _load_settings_file(path: Optional[Path] = None) -> dict:
    path = path or Path(__file__).resolve().parents[1] / "data" / "settings.json"
    if not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def load_env(settings_path: Optional[Path] = None) -> AppConfig:
    # data/settings.json wins over the environment; .env only fills the environment
    load_dotenv()
    s = _load_settings_file(settings_path)

    def pick(key: str, default=None):
        value = s.get(key)
        if value is None or value == "":
            value = os.getenv(key, default)
        return value

    return AppConfig(
        database_url=pick("DATABASE_URL", "sqlite:///data/app.db"),
        log_level=validate_log_level(pick("LOG_LEVEL")),
        currency=validate_currency(pick("CURRENCY")),
        cart_cookie_name=pick("CART_COOKIE_NAME", "cart_session_id"),
        cart_cookie_max_age=int(pick("CART_COOKIE_MAX_AGE", DEFAULT_COOKIE_MAX_AGE)),
        cart_cookie_secure=_as_bool(pick("CART_COOKIE_SECURE", False)),
        category_delete_policy=validate_delete_policy(pick("CATEGORY_DELETE_POLICY")),
    )
