from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _default_data_dir() -> Path:
    return Path(__file__).resolve().parents[2] / "data" / "mock"


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    cors_origins: list[str]
    redacted_fields: frozenset[str]
    log_level: str
    host: str
    port: int


def cors_origins() -> list[str]:
    parsed = _split_csv(os.getenv("GATECHECK_CORS_ORIGINS", "*"))
    if not parsed or "*" in parsed:
        return ["*"]
    return parsed


def load_settings() -> Settings:
    raw_data_dir = os.getenv("GATECHECK_DATA_DIR", "").strip()
    raw_port = os.getenv("GATECHECK_PORT", "3000").strip()
    try:
        port = int(raw_port)
    except ValueError as exc:
        raise ValueError(f"GATECHECK_PORT must be an integer, got {raw_port!r}") from exc
    return Settings(
        data_dir=Path(raw_data_dir) if raw_data_dir else _default_data_dir(),
        cors_origins=cors_origins(),
        redacted_fields=frozenset(_split_csv(os.getenv("GATECHECK_REDACTED_FIELDS", "email,phone"))),
        log_level=os.getenv("GATECHECK_LOG_LEVEL", "INFO").strip().upper(),
        host=os.getenv("GATECHECK_HOST", "0.0.0.0").strip(),
        port=port,
    )
