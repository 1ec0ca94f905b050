from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BASE_URL_ENV = "ACOEM_BASEURL"
_ACCOUNT_ID_ENV = "ACOEM_ACCOUNT_ID"
_ACCOUNT_KEY_ENV = "ACOEM_ACCOUNT_KEY"
_CONTEXT_BROKER_URL_ENV = "CONTEXT_BROKER_URL"
_LWM2M_URL_ENV = "LWM2M_ENDPOINT_URL"
_OUTPUT_TYPE_ENV = "OUTPUT_TYPE"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_HTTP_TIMEOUT_ENV = "HTTP_TIMEOUT_SECONDS"
_TLS_SKIP_VERIFY_ENV = "TLS_SKIP_VERIFY"
_SYNC_ON_STARTUP_ENV = "SYNC_ON_STARTUP"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    acoem_base_url: str
    acoem_account_id: str
    acoem_account_key: str
    context_broker_url: Optional[str]
    lwm2m_endpoint_url: Optional[str]
    output_type: Optional[str]
    poll_interval: float
    http_timeout: float
    tls_skip_verify: bool
    sync_on_startup: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in {"1", "true", "yes", "on"}


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    output_type = _read_optional_env(_OUTPUT_TYPE_ENV, None)
    return Settings(
        acoem_base_url=_read_str_env(_BASE_URL_ENV, "").rstrip("/"),
        acoem_account_id=_read_str_env(_ACCOUNT_ID_ENV, ""),
        acoem_account_key=_read_str_env(_ACCOUNT_KEY_ENV, ""),
        context_broker_url=_read_optional_env(_CONTEXT_BROKER_URL_ENV, None),
        lwm2m_endpoint_url=_read_optional_env(_LWM2M_URL_ENV, None),
        output_type=output_type.lower() if output_type else None,
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 300.0),
        http_timeout=_read_positive_float(_HTTP_TIMEOUT_ENV, 30.0),
        tls_skip_verify=_read_flag(_TLS_SKIP_VERIFY_ENV, False),
        sync_on_startup=_read_flag(_SYNC_ON_STARTUP_ENV, False),
        log_level=_read_log_level("INFO"),
    )
