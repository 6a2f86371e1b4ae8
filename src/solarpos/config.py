from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int) -> int:
    v = _get_env(*keys)
    if v is None:
        return default
    return int(v)


def _get_bool(*keys: str) -> bool:
    v = _get_env(*keys)
    return v is not None and v.lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    db_path: str
    export_dir: str
    store_name: str
    store_tagline: str
    currency_symbol: str
    low_stock_threshold: int
    admin_email: str
    admin_password: str
    debug: bool
    log_file: str | None

    @property
    def export_path(self) -> Path:
        return Path(self.export_dir)


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    return Settings(
        db_path=_get_env("SOLARPOS_DB_PATH", default="data/solarpos.sqlite"),
        export_dir=_get_env("SOLARPOS_EXPORT_DIR", default="exports"),
        store_name=_get_env("SOLARPOS_STORE_NAME", default="JOKER SOLAR SOLUTION"),
        store_tagline=_get_env(
            "SOLARPOS_STORE_TAGLINE", default="Electronics Store"
        ),
        currency_symbol=_get_env("SOLARPOS_CURRENCY_SYMBOL", default="$"),
        low_stock_threshold=_get_int("SOLARPOS_LOW_STOCK", default=10),
        admin_email=_get_env("SOLARPOS_ADMIN_EMAIL", default="admin@example.com"),
        admin_password=_get_env("SOLARPOS_ADMIN_PASSWORD", default="admin"),
        debug=_get_bool("SOLARPOS_DEBUG", "DEBUG"),
        log_file=_get_env("SOLARPOS_LOG_FILE"),
    )


settings = load_settings()
