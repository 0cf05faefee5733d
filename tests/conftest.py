"""Pytest configuration and shared fixtures."""
from typing import List, Optional

import pytest

from app.catalog.schemas import ToolRecord
from app.errors import UpstreamConnectionError, UpstreamHTTPError
from app.models import RelayRequest
from app.orchestrator import RelayTransport
from app.storage import Session


def make_tool(name, category="", description="", tags=None, **kwargs) -> ToolRecord:
    return ToolRecord(
        id=name.lower().replace(" ", "-"),
        name=name,
        category=category,
        description=description,
        tags=tags or [],
        link=f"https://{name.lower().replace(' ', '')}.example",
        **kwargs,
    )


@pytest.fixture
def catalog() -> List[ToolRecord]:
    """A small catalog covering several categories."""
    return [
        make_tool("Supabase", "Backend & Databases", "Postgres database with auth", ["database", "auth"]),
        make_tool("Vercel", "Hosting", "Deploy frontend apps", ["deploy", "serverless"]),
        make_tool("OpenRouter", "AI & LLM APIs", "One API for many language models", ["llm", "api"]),
        make_tool("Ollama", "AI & LLM APIs", "Run models locally", ["local", "llm"]),
        make_tool("PostHog", "Analytics & Tracking", "Product analytics", ["analytics", "tracking"]),
        make_tool("Paystack", "Payments & Monetization", "Accept payments", ["payments"]),
    ]


class FakeClient:
    """Stands in for OpenRouterClient; replies or raises from a script."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []
        self.keys = []

    def factory(self, api_key):
        self.keys.append(api_key)
        return self

    def complete(self, system_prompt, message, model):
        self.calls.append({"system_prompt": system_prompt, "message": message, "model": model})
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


class FakeRelay(RelayTransport):
    def __init__(self, script):
        self.script = list(script)
        self.requests: List[RelayRequest] = []

    def send(self, request: RelayRequest) -> str:
        self.requests.append(request)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


def provider_error(status: int = 400) -> UpstreamHTTPError:
    return UpstreamHTTPError(status, "Provider returned error")


def unreachable() -> UpstreamConnectionError:
    return UpstreamConnectionError("Connection refused")


@pytest.fixture
def session() -> Session:
    return Session()


@pytest.fixture
def keyed_session() -> Session:
    return Session(credential="sk-or-v1-user")


def post_recorder(status: int, body: Optional[dict], raw: str = ""):
    """A fake ``post_json`` returning a fixed response and recording calls."""
    calls = []

    def post(url, payload, headers=None, timeout=None):
        calls.append({"url": url, "payload": payload, "headers": headers or {}})
        return status, body, raw

    post.calls = calls
    return post
