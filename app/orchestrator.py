"""
Chat orchestration: one user turn from question to reply or notice.

A turn matches the question against the catalog, records the user
message, builds the system prompt, resolves the model and dispatches to
exactly one backend:

* direct mode, when the session holds the user's own key, calls
  OpenRouter with that key;
* proxied mode goes through the relay, which uses a server-held key.

A failed turn is classified into the ``app.errors`` taxonomy. A
``ProviderError`` on a pinned model is retried once in ``auto`` mode
without telling the user; any other failure becomes a ``Notice`` and
the transcript keeps the user message without a reply.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, Tuple

from . import config
from .catalog.schemas import ToolRecord
from .errors import (
    ChatError,
    EmptyMessageError,
    GenericChatError,
    ProviderError,
    RelayConnectionError,
    SessionBusyError,
    UpstreamConnectionError,
    UpstreamHTTPError,
    classify_error,
)
from .llm import (
    AUTO,
    DEFAULT_MODEL_KEY,
    OpenRouterClient,
    error_message,
    post_json,
    resolve_model_key,
    upstream_model,
)
from .matcher import match
from .models import ChatMessage, MatchResult, RelayRequest, TurnOutcome
from .prompts import compose_system_prompt, tools_context
from .relay import GATEWAY_PROVIDER, Relay
from .storage import Session


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reply clean-up

_FENCE_RE = re.compile(r"^[ \t]*```[^\n]*\n?", re.MULTILINE)
_HEADER_RE = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+", re.MULTILINE)
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?!\s)([^*\n]+?)(?<!\s)\*(?![\w*])")
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")


def strip_markup(text: str) -> str:
    """Remove leftover markdown from a reply that was asked to be plain text."""
    text = _FENCE_RE.sub("", text)
    text = _HEADER_RE.sub("", text)
    text = _LINK_RE.sub(r"\1 (\2)", text)
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    return text.strip()


# ---------------------------------------------------------------------------
# Relay transports


class RelayTransport(ABC):
    """How the orchestrator reaches the relay in proxied mode."""

    @abstractmethod
    def send(self, request: RelayRequest) -> str:
        """Return the relay's reply text.

        Raises
        ------
        UpstreamHTTPError
            The relay answered with an ``{error}`` envelope.
        UpstreamConnectionError
            The relay could not be reached.
        """


class LocalRelayTransport(RelayTransport):
    """Calls an in-process :class:`Relay`."""

    def __init__(self, relay: Relay, caller: str = "local"):
        self.relay = relay
        self.caller = caller

    def send(self, request: RelayRequest) -> str:
        status, body = self.relay.handle(request, self.caller)
        if status != 200:
            raise UpstreamHTTPError(status, str(body.get("error") or f"HTTP {status}"))
        return str(body.get("reply") or "")


class HttpRelayTransport(RelayTransport):
    """POSTs to a relay deployed elsewhere."""

    def __init__(self, url: str, timeout: float = config.HTTP_TIMEOUT_SECONDS, post=post_json):
        self.url = url
        self.timeout = timeout
        self._post = post

    def send(self, request: RelayRequest) -> str:
        status, body, _ = self._post(self.url, request.model_dump(), {}, self.timeout)
        if not 200 <= status < 300:
            raise UpstreamHTTPError(status, error_message(status, body))
        if not isinstance(body, dict):
            raise UpstreamHTTPError(status, "Malformed response from the chat service.")
        return str(body.get("reply") or "")


# ---------------------------------------------------------------------------
# Orchestrator


class ChatOrchestrator:
    def __init__(
        self,
        catalog: Sequence[ToolRecord],
        relay: RelayTransport,
        client_factory: Callable[[str], OpenRouterClient] = OpenRouterClient,
        fallback_key: Optional[str] = config.FALLBACK_API_KEY,
        retry_delay: float = config.RETRY_DELAY_SECONDS,
        strip: bool = config.STRIP_MARKUP,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.catalog = catalog
        self.relay = relay
        self._client_factory = client_factory
        self._fallback_key = fallback_key
        self._retry_delay = retry_delay
        self._strip = strip
        self._sleep = sleep

    def send_turn(self, message: str, session: Session) -> TurnOutcome:
        """Run one user turn against ``session``.

        Raises ``EmptyMessageError`` for a blank message and
        ``SessionBusyError`` while another turn of the same session is in
        flight; neither changes the session.
        """
        text = (message or "").strip()
        if not text:
            raise EmptyMessageError("Message is empty.")
        if not session.try_acquire():
            raise SessionBusyError("A message is already being sent.")
        try:
            context = match(text, self.catalog)
            session.append(ChatMessage(role="user", content=text, context=context))
            session.retry_count = 0
            return self._run(text, context, session)
        finally:
            session.release()

    def _run(self, text: str, context: MatchResult, session: Session) -> TurnOutcome:
        retried = False
        while True:
            try:
                model_key, reply = self._dispatch(text, context, session)
            except ChatError as err:
                if self._should_retry(err, session):
                    logger.info(
                        "Model %s failed on the provider side, retrying in auto mode",
                        session.model_preference,
                    )
                    session.model_preference = AUTO
                    session.retry_count += 1
                    retried = True
                    self._sleep(self._retry_delay)
                    continue
                notice = err.to_notice()
                session.notices.append(notice)
                logger.warning("Chat turn failed: %s (%s)", notice.title, err)
                return TurnOutcome(notice=notice, retried=retried)

            if self._strip:
                reply = strip_markup(reply)
            assistant = ChatMessage(role="assistant", content=reply, model=model_key)
            session.append(assistant)
            session.retry_count = 0
            return TurnOutcome(reply=assistant, retried=retried)

    def _should_retry(self, err: ChatError, session: Session) -> bool:
        return (
            isinstance(err, ProviderError)
            and session.retry_count < config.MAX_AUTO_RETRIES
            and session.model_preference != AUTO
        )

    def _dispatch(self, text: str, context: MatchResult, session: Session) -> Tuple[str, str]:
        model_key = resolve_model_key(session.model_preference, text)
        system_prompt = compose_system_prompt(context, self.catalog)
        try:
            if session.credential:
                client = self._client_factory(session.credential)
                return model_key, client.complete(system_prompt, text, upstream_model(model_key))
            return self._via_relay(text, model_key, system_prompt)
        except ChatError:
            raise
        except UpstreamHTTPError as exc:
            raise classify_error(exc.status, exc.message) from exc
        except Exception as exc:
            # network loss and malformed bodies end up here
            logger.exception("Unexpected chat failure")
            raise GenericChatError(str(exc)) from exc

    def _via_relay(self, text: str, model_key: str, system_prompt: str) -> Tuple[str, str]:
        request = RelayRequest(
            message=text,
            toolsContext=tools_context(self.catalog),
            modelPreference=model_key,
            provider=GATEWAY_PROVIDER,
            systemPrompt=system_prompt,
        )
        try:
            return model_key, self.relay.send(request)
        except UpstreamConnectionError as exc:
            if not self._fallback_key:
                raise RelayConnectionError(str(exc)) from exc
            logger.warning("Relay unreachable (%s), falling back to a direct call", exc)
        client = self._client_factory(self._fallback_key)
        return DEFAULT_MODEL_KEY, client.complete(
            system_prompt, text, upstream_model(DEFAULT_MODEL_KEY)
        )
