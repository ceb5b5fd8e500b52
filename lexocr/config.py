"""Centralized configuration for OCR engines, quota limits and logging.

All env-driven settings live here so there is a single source of truth.
Components receive a ``PipelineConfig`` built by ``load_pipeline_config``.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass


def _env_bool(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int, lo: int = 0, hi: int = 10_000_000) -> int:
    try:
        return max(lo, min(hi, int(os.environ.get(name, str(default)))))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float, lo: float = 0.1, hi: float = 10.0) -> float:
    try:
        return max(lo, min(hi, float(os.environ.get(name, str(default)))))
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Cloud OCR (Google Cloud Vision)
# ---------------------------------------------------------------------------
CLOUD_OCR_ENABLED: bool = _env_bool("GOOGLE_CLOUD_VISION_ENABLED")
PROJECT_ID: str = os.environ.get("GOOGLE_CLOUD_PROJECT_ID", "").strip()
CREDENTIALS_PATH: str = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "").strip()
CLOUD_OCR_WORKERS: int = _env_int("CLOUD_OCR_WORKERS", default=1, lo=1, hi=8)

# ---------------------------------------------------------------------------
# Quota windows (pages per day / per month)
# ---------------------------------------------------------------------------
DAILY_LIMIT: int = _env_int("GOOGLE_VISION_DAILY_LIMIT", default=100)
MONTHLY_LIMIT: int = _env_int("GOOGLE_VISION_MONTHLY_LIMIT", default=1000)
QUOTA_FILE: str = os.environ.get("QUOTA_FILE", os.path.join("data", "vision-quota.json"))

# ---------------------------------------------------------------------------
# Rasterization / local OCR
# ---------------------------------------------------------------------------
RASTER_SCALE: float = _env_float("RASTER_SCALE", default=2.0)
TESSERACT_LANG: str = os.environ.get("TESSERACT_LANG", "fra").strip() or "fra"

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


@dataclass(frozen=True)
class PipelineConfig:
    """Options recognised by the extraction pipeline."""

    cloud_ocr_enabled: bool = False
    project_id: str = ""
    credentials_path: str = ""
    daily_limit: int = 100
    monthly_limit: int = 1000
    raster_scale: float = 2.0
    quota_file: str = os.path.join("data", "vision-quota.json")
    tesseract_lang: str = "fra"
    cloud_ocr_workers: int = 1


def load_pipeline_config() -> PipelineConfig:
    """Build a ``PipelineConfig`` from the environment-derived constants."""

    return PipelineConfig(
        cloud_ocr_enabled=CLOUD_OCR_ENABLED,
        project_id=PROJECT_ID,
        credentials_path=CREDENTIALS_PATH,
        daily_limit=DAILY_LIMIT,
        monthly_limit=MONTHLY_LIMIT,
        raster_scale=RASTER_SCALE,
        quota_file=QUOTA_FILE,
        tesseract_lang=TESSERACT_LANG,
        cloud_ocr_workers=CLOUD_OCR_WORKERS,
    )


def configure_logging(level: str | None = None) -> None:
    """Install a stderr handler at ``level`` (defaults to ``LOG_LEVEL``)."""

    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def log_startup_config(config: PipelineConfig | None = None) -> None:
    """Log one line summarising active configuration."""

    cfg = config or load_pipeline_config()
    logging.getLogger(__name__).info(
        "lexocr config: CLOUD_OCR_ENABLED=%s PROJECT_ID=%s CREDENTIALS=%s "
        "DAILY_LIMIT=%d MONTHLY_LIMIT=%d RASTER_SCALE=%.2f QUOTA_FILE=%s "
        "TESSERACT_LANG=%s CLOUD_OCR_WORKERS=%d",
        cfg.cloud_ocr_enabled,
        cfg.project_id or "-",
        "set" if cfg.credentials_path else "unset",
        cfg.daily_limit,
        cfg.monthly_limit,
        cfg.raster_scale,
        cfg.quota_file,
        cfg.tesseract_lang,
        cfg.cloud_ocr_workers,
    )
