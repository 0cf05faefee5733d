"""
OpenRouter-compatible chat completion client and model tables.

Two lookup tables live here: ``CLIENT_MODELS`` for the models a chat
user can pick, and ``RELAY_MODELS`` for the wider set the relay can
route to. Both resolve unknown keys to an explicit default entry.

Outbound HTTP goes through ``urllib.request`` only. Error statuses are
returned to the caller rather than raised, so each caller decides how
to report them; network failures raise ``UpstreamConnectionError``.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .errors import UpstreamConnectionError, UpstreamHTTPError, status_message


logger = logging.getLogger(__name__)


AUTO = "auto"

MODEL_LABELS: Dict[str, str] = {
    AUTO: "Auto",
    "gemini": "Gemini",
    "deepseek": "DeepSeek",
    "gpt_oss": "GPT-OSS",
}

CLIENT_MODELS: Dict[str, str] = {
    "gemini": "google/gemini-2.0-flash-exp:free",
    "deepseek": "deepseek/deepseek-r1:free",
    "gpt_oss": "openai/gpt-oss-20b:free",
}
DEFAULT_MODEL_KEY = "gemini"

RELAY_MODELS: Dict[str, str] = {
    "qwen": "qwen/qwen3-coder:free",
    "gemini": "google/gemini-2.0-flash-exp:free",
    "deepseek": "deepseek/deepseek-r1:free",
    "gemma": "google/gemma-3-27b-it:free",
    "deepseek_chat": "deepseek/deepseek-chat-v3-0324:free",
    "gpt_oss": "openai/gpt-oss-20b:free",
}

_REASONING_HINTS = ("code", "programming")
_CODING_HINTS = ("code", "programming", "function", "api", "debug", "error")
_EXPLAIN_HINTS = ("explain", "what is", "how does", "tell me")


def resolve_model_key(preference: str, message: str) -> str:
    """Pick the logical model key for a chat turn.

    ``auto`` sends coding questions to the reasoning model and everything
    else to the general-purpose one; any other preference is used as is.
    """
    if preference != AUTO:
        return preference
    lowered = message.lower()
    if any(hint in lowered for hint in _REASONING_HINTS):
        return "deepseek"
    return DEFAULT_MODEL_KEY


def upstream_model(key: str) -> str:
    return CLIENT_MODELS.get(key, CLIENT_MODELS[DEFAULT_MODEL_KEY])


def select_relay_model(message: str, preference: Optional[str] = None) -> str:
    if preference and preference in RELAY_MODELS:
        return RELAY_MODELS[preference]
    lowered = (message or "").lower()
    if any(hint in lowered for hint in _CODING_HINTS):
        return RELAY_MODELS["qwen"]
    if any(hint in lowered for hint in _EXPLAIN_HINTS):
        return RELAY_MODELS["gemini"]
    return RELAY_MODELS["deepseek_chat"]


def post_json(
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = config.HTTP_TIMEOUT_SECONDS,
) -> Tuple[int, Optional[Any], str]:
    """POST ``payload`` as JSON and return ``(status, parsed_body, raw_body)``.

    ``parsed_body`` is ``None`` when the body is not valid JSON. HTTP
    error statuses are returned like any other; only transport failures
    raise.
    """
    data = json.dumps(payload).encode("utf-8")
    request = urllib.request.Request(
        url,
        data=data,
        method="POST",
        headers={"Content-Type": "application/json", "Accept": "application/json", **(headers or {})},
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            status = response.status
            raw = response.read().decode("utf-8", errors="ignore")
    except urllib.error.HTTPError as exc:
        status = exc.code
        raw = exc.read().decode("utf-8", errors="ignore") if exc.fp is not None else ""
    except (urllib.error.URLError, OSError) as exc:
        logger.error("Error posting to %s: %s", url, exc)
        raise UpstreamConnectionError(str(exc)) from exc
    try:
        parsed = json.loads(raw) if raw else None
    except json.JSONDecodeError:
        parsed = None
    return status, parsed, raw


def error_message(status: int, body: Optional[Any]) -> str:
    """Extract an error message from ``{error: {message}}`` or ``{error: str}``."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        return f"HTTP {status}"
    return status_message(status)


def completion_text(body: Any) -> str:
    """Return ``choices[0].message.content`` from a completion body."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamHTTPError(200, "Malformed response from the AI provider.") from exc
    return content if isinstance(content, str) else ""


def chat_messages(system_prompt: str, message: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": message},
    ]


class OpenRouterClient:
    """Direct chat completion calls with a bearer credential."""

    def __init__(
        self,
        api_key: str,
        url: str = config.OPENROUTER_URL,
        referer: str = config.APP_REFERER,
        title: str = config.APP_TITLE,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        post=post_json,
    ):
        self._api_key = api_key
        self._url = url
        self._referer = referer
        self._title = title
        self._timeout = timeout
        self._post = post

    def complete(self, system_prompt: str, message: str, model: str) -> str:
        payload = {
            "model": model,
            "messages": chat_messages(system_prompt, message),
            "temperature": config.TEMPERATURE,
            "max_tokens": config.MAX_TOKENS,
            "top_p": config.TOP_P,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "HTTP-Referer": self._referer,
            "X-Title": self._title,
        }
        status, body, raw = self._post(self._url, payload, headers, self._timeout)
        if not 200 <= status < 300:
            logger.warning("OpenRouter returned %s for model %s: %s", status, model, raw[:300])
            raise UpstreamHTTPError(status, error_message(status, body))
        return completion_text(body)
