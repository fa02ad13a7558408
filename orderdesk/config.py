from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(slots=True)
class Settings:
    """Runtime configuration, read from the environment at start-up."""

    poll_interval_seconds: float = 10.0
    max_claim_age_seconds: float = 3600.0
    sync_alert_threshold: int = 5
    woocommerce_api_base: str | None = None
    woocommerce_key: str | None = None
    woocommerce_secret: str | None = None
    employees_file: Path | None = None
    log_dir: Path | None = Path("logs")
    log_level: str = "DEBUG"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def max_claim_age(self) -> timedelta:
        return timedelta(seconds=self.max_claim_age_seconds)

    @property
    def woocommerce_configured(self) -> bool:
        return bool(self.woocommerce_api_base and self.woocommerce_key and self.woocommerce_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        employees_file = os.getenv("ORDERDESK_EMPLOYEES_FILE")
        log_dir = os.getenv("ORDERDESK_LOG_DIR", "logs")

        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

        return cls(
            poll_interval_seconds=_env_float("ORDERDESK_POLL_INTERVAL_SECONDS", 10.0),
            max_claim_age_seconds=_env_float("ORDERDESK_MAX_CLAIM_AGE_SECONDS", 3600.0),
            sync_alert_threshold=int(_env_float("ORDERDESK_SYNC_ALERT_THRESHOLD", 5)),
            woocommerce_api_base=os.getenv("WOOCOMMERCE_API_BASE") or None,
            woocommerce_key=os.getenv("WOOCOMMERCE_KEY") or None,
            woocommerce_secret=os.getenv("WOOCOMMERCE_SECRET") or None,
            employees_file=Path(employees_file) if employees_file else None,
            log_dir=Path(log_dir) if log_dir else None,
            log_level=(os.getenv("ORDERDESK_LOG_LEVEL") or "DEBUG").upper(),
            cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        )
