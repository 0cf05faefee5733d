"""
Chat relay: forwards a chat request upstream using a server-held credential.

The relay picks a model, applies the trial rate limit when the shared
gateway credential is used, calls the provider and normalises the
answer into ``{reply, model, availableModels}``. Failures come back as
``{error}`` with the status the caller should see: 429 and 402 are
passed through, everything else is a 500.

The rate-limit store is injected. ``InMemoryRateLimitStore`` keeps its
windows in the process, so limits reset on restart and are not shared
between instances.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import config
from .errors import UpstreamConnectionError
from .llm import RELAY_MODELS, chat_messages, post_json, select_relay_model
from .models import RelayRequest
from .prompts import relay_system_prompt


logger = logging.getLogger(__name__)

GATEWAY_PROVIDER = "gateway"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

TRIAL_LIMIT_MESSAGE = (
    "Trial limit reached ({limit} per {minutes} min). "
    "Add your OpenRouter API key in settings to continue."
)
UPSTREAM_RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
UPSTREAM_PAYMENT_MESSAGE = "Payment required. Please add credits to your workspace."


class RateLimitStore(ABC):
    """Sliding-window request log keyed by caller."""

    @abstractmethod
    def hit(self, key: str, now: float, window: float, limit: int) -> bool:
        """Record a request for ``key`` unless it would exceed ``limit``.

        Returns ``True`` when the request is allowed (and recorded),
        ``False`` when the window is already full.
        """


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._hits: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def _sweep(self, now: float, window: float) -> None:
        # at most once per window; drops callers with no hit left inside it
        if self._last_sweep is not None and now - self._last_sweep < window:
            return
        self._last_sweep = now
        for key in [k for k, hits in self._hits.items() if not hits or now - hits[-1] >= window]:
            del self._hits[key]

    def hit(self, key: str, now: float, window: float, limit: int) -> bool:
        with self._lock:
            self._sweep(now, window)
            recent = [t for t in self._hits.get(key, []) if now - t < window]
            if len(recent) >= limit:
                if recent:
                    self._hits[key] = recent
                else:
                    self._hits.pop(key, None)
                return False
            recent.append(now)
            self._hits[key] = recent
            return True

    def count(self, key: str) -> int:
        with self._lock:
            return len(self._hits.get(key, []))

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)


def client_ip(headers: Dict[str, str], peer: Optional[str] = None) -> str:
    """Caller address: first ``x-forwarded-for`` hop, then ``x-real-ip``, then the peer."""
    lowered = {k.lower(): v for k, v in headers.items()}
    forwarded = (lowered.get("x-forwarded-for") or "").split(",")[0].strip()
    return forwarded or (lowered.get("x-real-ip") or "").strip() or peer or "unknown"


class Relay:
    def __init__(
        self,
        rate_limits: Optional[RateLimitStore] = None,
        openrouter_key: Optional[str] = config.OPENROUTER_API_KEY,
        gateway_key: Optional[str] = config.GATEWAY_API_KEY,
        openrouter_url: str = config.OPENROUTER_URL,
        gateway_url: str = config.GATEWAY_URL,
        limit: int = config.RATE_LIMIT_MAX,
        window_seconds: float = config.RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
        post=post_json,
    ):
        self.rate_limits = rate_limits or InMemoryRateLimitStore()
        self._openrouter_key = openrouter_key
        self._gateway_key = gateway_key
        self._openrouter_url = openrouter_url
        self._gateway_url = gateway_url
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._post = post

    def _error(self, status: int, message: str) -> Tuple[int, Dict[str, Any]]:
        return status, {"error": message}

    def handle(self, req: RelayRequest, caller: str = "unknown") -> Tuple[int, Dict[str, Any]]:
        """Process one relay request and return ``(status, body)``."""
        try:
            return self._handle(req, caller)
        except UpstreamConnectionError as exc:
            logger.error("Relay could not reach the provider: %s", exc)
            return self._error(500, str(exc) or "Unknown error")
        except Exception as exc:
            logger.exception("Error in chat relay")
            return self._error(500, str(exc) or "Unknown error")

    def _handle(self, req: RelayRequest, caller: str) -> Tuple[int, Dict[str, Any]]:
        gateway = req.provider == GATEWAY_PROVIDER
        if not gateway and not self._openrouter_key:
            raise RuntimeError(
                "OpenRouter API key is missing. Please add it in the project settings "
                "or use the client-side API key option."
            )

        selected_model = select_relay_model(req.message, req.modelPreference)
        logger.info("Relay using model %s (provider=%s)", selected_model, req.provider or "openrouter")

        headers: Dict[str, str] = {}
        if gateway:
            if not self._gateway_key:
                raise RuntimeError("GATEWAY_API_KEY is not configured")
            headers["Authorization"] = f"Bearer {self._gateway_key}"
            url = self._gateway_url
            # the gateway always serves the general-purpose model
            upstream = RELAY_MODELS["gemini"]
        else:
            headers["Authorization"] = f"Bearer {self._openrouter_key}"
            headers["HTTP-Referer"] = config.APP_REFERER
            headers["X-Title"] = config.APP_TITLE
            url = self._openrouter_url
            upstream = selected_model

        if gateway and not self.rate_limits.hit(caller, self._clock(), self._window, self._limit):
            logger.info("Trial limit reached for %s", caller)
            return self._error(
                429,
                TRIAL_LIMIT_MESSAGE.format(limit=self._limit, minutes=int(self._window // 60)),
            )

        system_prompt = req.systemPrompt or relay_system_prompt(req.toolsContext)
        payload = {"model": upstream, "messages": chat_messages(system_prompt, req.message)}
        status, body, raw = self._post(url, payload, headers)

        if not 200 <= status < 300:
            logger.error("Chat provider error: %s %s", status, raw[:300])
            if status == 429:
                return self._error(429, UPSTREAM_RATE_LIMIT_MESSAGE)
            if status == 402:
                return self._error(402, UPSTREAM_PAYMENT_MESSAGE)
            return self._error(500, f"Chat provider error: {status}")

        return 200, {
            "reply": _reply_text(body),
            "model": GATEWAY_PROVIDER if gateway else selected_model,
            "availableModels": list(RELAY_MODELS),
        }


def _reply_text(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    choices = body.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict) and message.get("content"):
            return str(message["content"])
    return str(body.get("reply") or body.get("message") or "")
