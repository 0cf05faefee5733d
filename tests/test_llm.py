"""Unit tests for model selection and the OpenRouter client."""
import pytest

from app.errors import (
    GenericChatError,
    InvalidCredential,
    PaymentRequired,
    ProviderError,
    RateLimited,
    UpstreamHTTPError,
    UpstreamUnavailable,
    classify_error,
)
from app.llm import (
    CLIENT_MODELS,
    RELAY_MODELS,
    OpenRouterClient,
    error_message,
    resolve_model_key,
    select_relay_model,
    upstream_model,
)
from tests.conftest import post_recorder


class TestModelSelection:
    @pytest.mark.parametrize(
        "preference, message, expected",
        [
            ("auto", "Help me write some Code", "deepseek"),
            ("auto", "programming tips", "deepseek"),
            ("auto", "best hosting", "gemini"),
            ("gpt_oss", "write code", "gpt_oss"),
        ],
    )
    def test_resolve_model_key(self, preference, message, expected):
        assert resolve_model_key(preference, message) == expected

    def test_unknown_key_falls_back_to_default(self):
        assert upstream_model("nope") == CLIENT_MODELS["gemini"]
        assert upstream_model("deepseek") == "deepseek/deepseek-r1:free"

    @pytest.mark.parametrize(
        "message, preference, expected",
        [
            ("anything", "gemma", "gemma"),
            ("debug this error", None, "qwen"),
            ("explain vector databases", None, "gemini"),
            ("hello there", None, "deepseek_chat"),
            ("hello there", "unknown", "deepseek_chat"),
        ],
    )
    def test_select_relay_model(self, message, preference, expected):
        assert select_relay_model(message, preference) == RELAY_MODELS[expected]


class TestOpenRouterClient:
    def test_request_shape(self):
        post = post_recorder(200, {"choices": [{"message": {"content": "hi"}}]})
        client = OpenRouterClient("sk-user", url="https://example.test/chat", post=post)

        assert client.complete("system", "question", "google/gemini-2.0-flash-exp:free") == "hi"

        call = post.calls[0]
        assert call["url"] == "https://example.test/chat"
        assert call["headers"]["Authorization"] == "Bearer sk-user"
        assert {"HTTP-Referer", "X-Title"} <= set(call["headers"])
        payload = call["payload"]
        assert payload["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "question"},
        ]
        assert payload["temperature"] == 0.6
        assert payload["max_tokens"] == 800
        assert payload["top_p"] == 0.9

    def test_error_body_message(self):
        post = post_recorder(400, {"error": {"message": "Provider returned error"}})
        with pytest.raises(UpstreamHTTPError) as exc_info:
            OpenRouterClient("k", post=post).complete("s", "m", "x")
        assert exc_info.value.status == 400
        assert exc_info.value.message == "Provider returned error"

    def test_malformed_success_body(self):
        post = post_recorder(200, {"unexpected": True})
        with pytest.raises(UpstreamHTTPError):
            OpenRouterClient("k", post=post).complete("s", "m", "x")


class TestErrorMessage:
    def test_nested_and_flat_error(self):
        assert error_message(400, {"error": {"message": "bad"}}) == "bad"
        assert error_message(429, {"error": "slow down"}) == "slow down"
        assert error_message(418, {"other": 1}) == "HTTP 418"

    def test_unparsable_body_uses_status(self):
        assert error_message(402, None).startswith("Payment required")
        assert error_message(418, None) == "HTTP 418"


class TestClassifyError:
    @pytest.mark.parametrize(
        "status, message, expected",
        [
            (400, "Provider returned error", ProviderError),
            (502, "Provider returned error", ProviderError),
            (429, "Trial limit reached (3 per 10 min).", RateLimited),
            (None, "Rate limit exceeded", RateLimited),
            (401, "No auth credentials found", InvalidCredential),
            (403, "forbidden", InvalidCredential),
            (402, "Payment required. Please add credits to your workspace.", PaymentRequired),
            (500, "Chat provider error: 503", UpstreamUnavailable),
            (None, "Bad gateway. The AI provider is experiencing issues.", UpstreamUnavailable),
            (400, "Something odd", GenericChatError),
        ],
    )
    def test_taxonomy(self, status, message, expected):
        assert type(classify_error(status, message)) is expected

    def test_generic_keeps_message(self):
        notice = classify_error(400, "Context length exceeded").to_notice()
        assert notice.title == "Error"
        assert notice.description == "Context length exceeded"

    def test_generic_without_message(self):
        assert classify_error(None, "").to_notice().description == "Failed to send message. Please try again."
