from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("ZAD_DB_PATH", "zad.db")
    poll_interval_s: int = _env_int("ZAD_POLL_INTERVAL_S", 300)
    autostart: bool = _env_bool("ZAD_AUTOSTART", True)

    # Zone this process deploys into
    system: str = os.getenv("ZAD_SYSTEM", "main")
    region: str = os.getenv("ZAD_REGION", "default")
    environment: str = os.getenv("ZAD_ENVIRONMENT", "prod")

    # Artifact download. The prefix is used verbatim, so it normally ends with '/'.
    artifact_url_prefix: str = os.getenv(
        "ZAD_ARTIFACT_URL_PREFIX", "https://artifactory.example.com/zone-application/"
    )
    fetch_timeout_s: float = _env_float("ZAD_FETCH_TIMEOUT_S", 30.0)

    # Deployment engine
    engine_url: str = os.getenv("ZAD_ENGINE_URL", "http://localhost:19071")
    deploy_timeout_s: float = _env_float("ZAD_DEPLOY_TIMEOUT_S", 60.0)


settings = Settings()
