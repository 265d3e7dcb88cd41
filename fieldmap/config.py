"""Runtime configuration read from environment variables.

Every setting has a default so the library works unconfigured; the API
entry point and the LLM backends read these module constants.
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Where saved pipeline definitions live (one JSON/YAML file per pipeline)
DEFINITIONS_DIR = Path(
    os.environ.get(
        "FIELDMAP_DEFINITIONS_DIR",
        str(Path(__file__).parent / "definitions"),
    )
)

LOG_LEVEL = os.environ.get("FIELDMAP_LOG_LEVEL", "INFO").upper()

# Lenient (log and continue) unless explicitly switched to strict
STRICT_MODE = _env_bool("FIELDMAP_STRICT")

# Text generation for ai-transform
TEXTGEN_URL = os.environ.get("FIELDMAP_TEXTGEN_URL")
TEXTGEN_TOKEN = os.environ.get("FIELDMAP_TEXTGEN_TOKEN")
TEXTGEN_TIMEOUT = float(os.environ.get("FIELDMAP_TEXTGEN_TIMEOUT", "60"))

AI_MODEL = os.environ.get("FIELDMAP_AI_MODEL", "claude-haiku-4-5-20251001")
AI_MODEL_FALLBACK = os.environ.get(
    "FIELDMAP_AI_MODEL_FALLBACK", "claude-sonnet-4-5-20250929"
)
AI_MAX_TOKENS = int(os.environ.get("FIELDMAP_AI_MAX_TOKENS", "1024"))

# Cache TTL for ai-transform results: 1 hour
AI_CACHE_TTL = int(os.environ.get("FIELDMAP_AI_CACHE_TTL", "3600"))
