"""
Core configuration for the Verified Visuals API

Centralises the provider selection, per-stage model identifiers and the
knobs of the research pipeline. Values can be overridden via env vars (or a
``.env`` file next to the working directory).
"""

import os
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# ────────────────────────────────────────────────────────────
#  Provider selection
# ────────────────────────────────────────────────────────────

SUPPORTED_PROVIDERS = ("gemini", "openai")

# Per-provider model defaults for the three pipeline stages
PROVIDER_MODEL_DEFAULTS: Dict[str, Dict[str, str]] = {
    "gemini": {
        "research": "gemini-3-flash-preview",
        "structuring": "gemini-3-flash-preview",
        "image": "gemini-2.5-flash-image",
    },
    "openai": {
        "research": "gpt-4.1-mini",
        "structuring": "gpt-4.1-mini",
        "image": "gpt-image-1",
    },
}


def get_provider_name() -> str:
    """Return the configured provider key (lower-cased)."""
    return (os.getenv("LLM_PROVIDER", "gemini") or "gemini").strip().lower()


def get_model_for_stage(stage: str, provider: Optional[str] = None) -> str:
    """Resolve the model for ``stage`` honouring ``<STAGE>_MODEL`` overrides."""
    override = os.getenv(f"{stage.upper()}_MODEL")
    if override:
        return override
    provider = provider or get_provider_name()
    defaults = PROVIDER_MODEL_DEFAULTS.get(provider, PROVIDER_MODEL_DEFAULTS["gemini"])
    return defaults[stage]


def get_gemini_api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def get_openai_api_key() -> Optional[str]:
    return os.getenv("OPENAI_API_KEY")


# ────────────────────────────────────────────────────────────
#  Pipeline defaults (env‑overridable)
# ────────────────────────────────────────────────────────────

IMAGE_ASPECT_RATIO: str = os.getenv("IMAGE_ASPECT_RATIO", "16:9")

PROVIDER_TIMEOUT_SECONDS: float = _env_float("PROVIDER_TIMEOUT_SECONDS", 120.0)

SUMMARY_MAX_WORDS: int = _env_int("SUMMARY_MAX_WORDS", 100)

NO_RESEARCH_FALLBACK_TEXT = "No research data found."


# ────────────────────────────────────────────────────────────
#  HTTP surface
# ────────────────────────────────────────────────────────────

TRUSTED_ORIGINS: List[str] = _env_list(
    "TRUSTED_ORIGINS",
    [
        "http://localhost:5173",
        "http://localhost:3000",
    ],
)

TOPIC_MAX_LENGTH: int = _env_int("TOPIC_MAX_LENGTH", 500)


def get_environment() -> str:
    """Get current environment"""
    return os.getenv("ENVIRONMENT", "development")
