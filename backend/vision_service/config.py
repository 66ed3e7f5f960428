"""
Vision service configuration.
Reads settings from the process environment once, at app creation time.
"""

import os
from typing import Dict, Any, Mapping, Optional

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# --- DEFAULTS ---
DEFAULT_PROMPT_ID = "pmpt_6898f03dbdbc8197a54a35fcc707a91f01e7adb5cb7bd1e3"
DEFAULT_QUESTION = "What is in this image?"
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB
PLACEHOLDER_API_KEY = "your_openai_api_key_here"


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Build the vision service settings from environment variables.

    Args:
        env (Mapping, optional): Source of variables. Defaults to os.environ.

    Returns:
        dict: Settings ready to be merged into `app.config`.
    """
    if env is None:
        env = os.environ

    max_image_bytes = int(env.get("MAX_IMAGE_BYTES", MAX_IMAGE_BYTES))
    public_base_url = (env.get("PUBLIC_BASE_URL") or "").strip().rstrip("/")

    return {
        "OPENAI_API_KEY": env.get("OPENAI_API_KEY"),
        "OPENAI_BASE_URL": env.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        "OPENAI_MODEL": env.get("OPENAI_MODEL", "gpt-5"),
        "OPENAI_PROMPT_ID": env.get("OPENAI_PROMPT_ID", DEFAULT_PROMPT_ID),
        "OPENAI_LEGACY_MODEL": env.get("OPENAI_LEGACY_MODEL", "gpt-4-vision-preview"),
        "OPENAI_LEGACY_MAX_TOKENS": int(env.get("OPENAI_LEGACY_MAX_TOKENS", 300)),
        "OPENAI_TIMEOUT": float(env.get("OPENAI_TIMEOUT", 60)),
        "OPENAI_VERIFY_TLS": _as_bool(env.get("OPENAI_VERIFY_TLS"), True),
        "DEFAULT_PROMPT": env.get("DEFAULT_PROMPT", DEFAULT_QUESTION),
        "UPLOAD_DIR": env.get("UPLOAD_DIR", os.path.join(PROJECT_ROOT, "temp_uploads")),
        "PUBLIC_BASE_URL": public_base_url or None,
        "MAX_IMAGE_BYTES": max_image_bytes,
        # Hard ceiling for the whole multipart body; leaves room for the prompt field.
        "MAX_CONTENT_LENGTH": max_image_bytes + 1024 * 1024,
        "CORS_ORIGINS": env.get("CORS_ORIGINS", "*"),
    }


def api_key_is_set(api_key: Optional[str]) -> bool:
    """True when the key is present and not the .env.example placeholder."""
    return bool(api_key) and api_key != PLACEHOLDER_API_KEY
