"""
Configuration for the Builders Lab catalog service.

Values are read once from the environment at import time. Every component
that depends on one of them also accepts an explicit override in its
constructor, so the tests never need to touch ``os.environ``.
"""

from __future__ import annotations

import os
from pathlib import Path

# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
CATALOG_DATA_DIR = Path(os.getenv("CATALOG_DATA_DIR", str(PROJECT_ROOT / "data")))
CONTENT_DIR = Path(os.getenv("CONTENT_DIR", str(PROJECT_ROOT / "content")))
CREDENTIAL_FILE = Path(
    os.getenv("CREDENTIAL_FILE", str(PROJECT_ROOT / "var" / "credentials.json"))
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Upstream providers
OPENROUTER_URL = os.getenv(
    "OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions"
)
GATEWAY_URL = os.getenv(
    "GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"
)
APP_REFERER = os.getenv("APP_REFERER", "https://builderlab.programmify.org")
APP_TITLE = os.getenv("APP_TITLE", "Builders Lab by Programmify")

# Server-held credentials. None of these is the user's own key.
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY") or None
GATEWAY_API_KEY = os.getenv("GATEWAY_API_KEY") or None
FALLBACK_API_KEY = os.getenv("FALLBACK_API_KEY") or None

# Where the orchestrator reaches the relay in proxied mode. Empty means the
# relay is called in-process.
RELAY_URL = os.getenv("RELAY_URL", "")

# Sampling parameters for direct calls
TEMPERATURE = 0.6
MAX_TOKENS = 800
TOP_P = 0.9
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))

# Relay rate limit (shared credential only)
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "3"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "600"))

# Matcher
MAX_TOOL_MATCHES = 8
CATEGORY_BONUS = 5
MIN_TOKEN_LENGTH = 3

# Orchestrator
MAX_AUTO_RETRIES = 1
RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "1.0"))
STRIP_MARKUP = os.getenv("STRIP_MARKUP", "1").strip().lower() not in {"0", "false", "no"}

CREDENTIAL_KEY = "openrouter_api_key"

# Chat sessions live in memory; the oldest are dropped past either bound.
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1000"))
SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", "3600"))
