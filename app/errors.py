# app/errors.py
"""Chat failure taxonomy and classification of upstream/relay errors."""

from typing import Optional

from .models import Notice


DEFAULT_FAILURE = "Failed to send message. Please try again."


class ChatError(Exception):
    """Base class for every failure surfaced to the chat user."""

    title = "Error"
    description = DEFAULT_FAILURE

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message or self.description)
        self.status = status

    def to_notice(self) -> Notice:
        return Notice(title=self.title, description=self.description, level="error")


class RateLimited(ChatError):
    title = "Rate Limit"
    description = "Too many requests. Please wait a few minutes before trying again."


class InvalidCredential(ChatError):
    title = "Invalid API Key"
    description = "Please check your OpenRouter API key in settings."


class PaymentRequired(ChatError):
    title = "Payment Required"
    description = "Please add credits to your OpenRouter account."


class UpstreamUnavailable(ChatError):
    title = "Service Unavailable"
    description = "The AI service is temporarily down. Please try again later."


class ProviderError(ChatError):
    """The provider accepted the call but the selected model failed."""

    title = "AI Provider Error"
    description = (
        "The AI model is temporarily unavailable. Try switching to a different model "
        "(like 'Auto' or 'Gemini') or try again later."
    )


class RelayConnectionError(ChatError):
    title = "Connection Error"
    description = "Could not reach the chat service. Check your connection and try again."


class GenericChatError(ChatError):
    """Anything else; the message is shown as is."""

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message, status)
        self.description = message or DEFAULT_FAILURE


# --- Transport-level errors, raised by app.llm and the relay transports ---


class UpstreamHTTPError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class UpstreamConnectionError(Exception):
    pass


_STATUS_MESSAGES = {
    401: "Invalid API key. Please check your OpenRouter API key.",
    402: "Payment required. Please add credits to your OpenRouter account.",
    403: "Access forbidden. Please check your API key permissions.",
    429: "Rate limit exceeded. Please try again in a few minutes.",
    500: "Server error. The AI provider is temporarily unavailable. Please try again later.",
    502: "Bad gateway. The AI provider is experiencing issues. Please try again later.",
    503: "Service unavailable. The AI provider is temporarily down. Please try again later.",
}


def status_message(status: int) -> str:
    """Fallback message for an error response whose body could not be parsed."""
    return _STATUS_MESSAGES.get(status, f"HTTP {status}")


def classify_error(status: Optional[int], message: str) -> ChatError:
    """Map an HTTP status and/or error message onto the chat error taxonomy.

    Message substrings are checked before status codes so that a provider
    failure reported with a 5xx status still counts as ``ProviderError``.
    """
    text = (message or "").lower()
    if "provider returned error" in text:
        return ProviderError(message, status)
    if status == 429 or "rate limit" in text:
        return RateLimited(message, status)
    if status in (401, 403) or "invalid api key" in text:
        return InvalidCredential(message, status)
    if status == 402 or "payment required" in text:
        return PaymentRequired(message, status)
    if (status is not None and 500 <= status < 600) or any(
        s in text for s in ("server error", "bad gateway", "service unavailable")
    ):
        return UpstreamUnavailable(message, status)
    return GenericChatError(message, status)


# --- Rejections of a send before anything is dispatched ---


class EmptyMessageError(ValueError):
    pass


class SessionBusyError(RuntimeError):
    pass
