"""Runtime settings loaded from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True, slots=True)
class Settings:
    """Values used by the extraction collaborator and the web surface."""

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    batch_size: int = 10  # Pages sent to the AI model concurrently
    batch_delay: float = 60.0  # Seconds to wait between batches (rate limit)
    pdf_dpi: int = 300
    pdf_max_pages: int = 100
    max_upload_mb: int = 50
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(*, use_dotenv: bool = True) -> Settings:
    """Build :class:`Settings` from environment variables."""

    if use_dotenv:
        load_dotenv()

    defaults = Settings()
    batch_size = _env_int("EXTRACTION_BATCH_SIZE", defaults.batch_size)
    if batch_size < 1:
        raise ValueError("EXTRACTION_BATCH_SIZE must be at least 1")

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
        batch_size=batch_size,
        batch_delay=_env_float("EXTRACTION_BATCH_DELAY", defaults.batch_delay),
        pdf_dpi=_env_int("PDF_DPI", defaults.pdf_dpi),
        pdf_max_pages=_env_int("PDF_MAX_PAGES", defaults.pdf_max_pages),
        max_upload_mb=_env_int("MAX_UPLOAD_MB", defaults.max_upload_mb),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )


def configure_logging(level: str | int = "INFO") -> None:
    """Attach a stream handler to the root logger and set its level."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(format=LOG_FORMAT)  # No-op when handlers already exist
    logging.getLogger().setLevel(level)


__all__ = ["Settings", "load_settings", "configure_logging"]
