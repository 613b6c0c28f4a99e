"""
Settings for the digitizer, read from the environment.

A ``.env`` file at the project root is loaded first; variables already
set in the environment win. Values that fail to parse fall back to the
default rather than aborting a run.

Usage:
    from voterroll.config import get_config
    config = get_config()
    config.coordinator.concurrency
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_dotenv(path: Path = PROJECT_ROOT / ".env") -> None:
    """KEY=VALUE lines; blank lines and # comments ignored; quotes stripped."""
    if not path.is_file():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key and not os.getenv(key):
            os.environ[key] = value.strip("\"'")


load_dotenv()


def _parse_bool(raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


def _parse_list(raw: str) -> List[str]:
    items = [v.strip() for v in raw.split(",") if v.strip()]
    if not items:
        raise ValueError(raw)
    return items


def _env(key: str, default: Any, parse: Callable[[str], Any] = str) -> Any:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default() if callable(default) else default
    try:
        return parse(raw)
    except ValueError:
        return default() if callable(default) else default


def env_field(key: str, default: Any, parse: Callable[[str], Any] = str):
    """Dataclass field read from the environment when the config is built."""
    return field(default_factory=lambda: _env(key, default, parse))


# Rotation order matters: quota limits are bucketed per model
DEFAULT_MODELS = [
    "gemini-3-pro-preview",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
]

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

LOCAL_STRATEGIES = ("ocr", "digital", "vision")


@dataclass
class AIConfig:
    """Vision model used by the remote page strategy."""
    provider: str = env_field("AI_PROVIDER", "Gemini")
    api_key: str = env_field("AI_API_KEY", "")
    base_url: str = env_field("AI_BASE_URL", "")
    models: List[str] = env_field("AI_MODELS", lambda: list(DEFAULT_MODELS), _parse_list)
    timeout_sec: int = env_field("AI_TIMEOUT_SEC", 120, int)

    max_retries: int = env_field("AI_MAX_RETRIES", 6, int)
    retry_base_delay_sec: float = env_field("AI_RETRY_BASE_DELAY_SEC", 1.5, float)
    retry_jitter_sec: float = env_field("AI_RETRY_JITTER_SEC", 0.5, float)

    # USD per million tokens; unset means cost is not tracked
    input_cost_per_1m_usd: Optional[float] = env_field("AI_INPUT_COST_PER_1M_USD", None, float)
    output_cost_per_1m_usd: Optional[float] = env_field("AI_OUTPUT_COST_PER_1M_USD", None, float)

    def get_normalized_base_url(self) -> str:
        """
        Base URL for the OpenAI SDK.

        Accepts a full ``.../chat/completions`` endpoint and trims it. With
        no URL set, Gemini gets its OpenAI-compatible endpoint and other
        providers the SDK default ("").
        """
        url = self.base_url.strip().rstrip("/")
        if not url:
            return GEMINI_OPENAI_BASE_URL if self.provider.lower() == "gemini" else ""
        if url.endswith("/chat/completions"):
            url = url[: -len("/chat/completions")].rstrip("/")
        return url + "/"

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> Optional[float]:
        if self.input_cost_per_1m_usd is None and self.output_cost_per_1m_usd is None:
            return None
        return (
            input_tokens * (self.input_cost_per_1m_usd or 0.0)
            + output_tokens * (self.output_cost_per_1m_usd or 0.0)
        ) / 1_000_000


@dataclass
class RemoteConfig:
    """Whole-document conversion endpoint; empty URL disables it."""
    url: str = env_field("REMOTE_CONVERTER_URL", "")
    timeout_sec: int = env_field("REMOTE_TIMEOUT_SEC", 300, int)

    @property
    def is_configured(self) -> bool:
        return bool(self.url.strip())


@dataclass
class OCRConfig:
    """Tesseract settings for the image strategy."""
    languages: str = env_field("OCR_LANGUAGES", "eng")
    tesseract_path: str = env_field("TESSERACT_PATH", "")
    psm: int = env_field("OCR_PSM", 6, int)
    binarize_threshold: int = env_field("OCR_BINARIZE_THRESHOLD", 128, int)
    header_band_px: int = env_field("OCR_HEADER_BAND_PX", 150, int)
    min_confidence: int = env_field("OCR_MIN_CONFIDENCE", 0, int)

    @property
    def tesseract_config(self) -> str:
        return f"--oem 1 --psm {self.psm}"


@dataclass
class CoordinatorConfig:
    """How a document is split into page tasks."""
    concurrency: int = env_field("CONCURRENCY", 2, int)
    # Cover and index pages in the observed roll layout
    skip_leading_pages: int = env_field("SKIP_LEADING_PAGES", 2, int)
    render_scale: float = env_field("RENDER_SCALE", 2.5, float)
    render_jpeg_quality: int = env_field("RENDER_JPEG_QUALITY", 80, int)
    local_strategy: str = env_field("LOCAL_STRATEGY", "ocr", str.lower)
    include_photos: bool = env_field("INCLUDE_PHOTOS", False, _parse_bool)


@dataclass
class Config:
    debug: bool = env_field("DEBUG", False, _parse_bool)
    log_to_file: bool = env_field("LOG_TO_FILE", True, _parse_bool)
    # Relative LOG_DIR values resolve against the project root
    logs_dir: Path = env_field("LOG_DIR", PROJECT_ROOT / "logs", lambda raw: PROJECT_ROOT / raw)

    ai: AIConfig = field(default_factory=AIConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    coordinator: CoordinatorConfig = field(default_factory=CoordinatorConfig)

    @property
    def dump_raw_ocr(self) -> bool:
        """Log every recognized word (always on in debug mode)."""
        return self.debug or _env("DUMP_RAW_OCR", False, _parse_bool)


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide config, built on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config re-reads the environment."""
    global _config
    _config = None
