"""Provider/runtime configuration for the generation gateway.

Architectural role:
    Centralizes model selection, endpoint layout, credential lookup, and local
    storage settings for `brainora.llm.client`, `brainora.llm.service`,
    `brainora.image`, and `brainora.memory.session_store`.

Model call flow integration:
    - `service.GeminiGateway` picks a text model per mode from `MODE_MODELS`.
    - `client` builds endpoint URLs from `GEMINI_BASE_URL` and resolves the API
      key through `load_key`.
    - `image.service` consumes `GEMINI_IMAGE_MODEL`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are resolved
    at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None`; the transport client turns it
    into a `ProviderError` at request time.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Sensitive request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()

PROVIDER = "gemini"

GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL",
    "https://generativelanguage.googleapis.com/v1beta/models",
)
GEMINI_KEY_FILE = "config/gemini.key"

# Text models: the pro model backs the deep-analysis and live modes.
GEMINI_FLASH_MODEL = os.getenv("GEMINI_FLASH_MODEL", "gemini-3-flash-preview")
GEMINI_PRO_MODEL = os.getenv("GEMINI_PRO_MODEL", "gemini-3-pro-preview")
GEMINI_GROUNDING_MODEL = os.getenv("GEMINI_GROUNDING_MODEL", GEMINI_PRO_MODEL)
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

MODE_MODELS = {
    "default": GEMINI_FLASH_MODEL,
    "knowledge": GEMINI_PRO_MODEL,
    "search": GEMINI_FLASH_MODEL,
    "creative": GEMINI_FLASH_MODEL,
    "live": GEMINI_PRO_MODEL,
}

# Modes whose streamed answers may consult Google Search.
SEARCH_TOOL_MODES = ("live", "search")

TEMPERATURE = 0.5
KNOWLEDGE_THINKING_BUDGET = 4000
IMAGE_ASPECT_RATIO = "1:1"

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "120"))

# Local persistence for the user record and the session list.
DATA_DIR = os.getenv("BRAINORA_DATA_DIR", "data")
STORAGE_NAMESPACE = os.getenv("BRAINORA_NAMESPACE", "brainora")


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing or empty file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None
