import json
import threading

import pytest

from reddit_pulse.config import get_settings
from reddit_pulse.crawlers.base import RawPost

ENV_VARS = [
    "REDDIT_ID",
    "REDDIT_SECRET",
    "REDDIT_USER_AGENT",
    "REDDIT_MAX_LIMIT",
    "DEEPSEEK_API_KEY",
    "DEEPSEEK_BASE_URL",
    "DEEPSEEK_MODEL",
    "ENRICH_STRATEGY",
    "ENRICH_OUTPUT_MODE",
    "ENRICH_BATCH_MAX_ITEMS",
    "ENRICH_MAX_WORKERS",
    "ENRICH_TOKENS_PER_ITEM",
    "DEFAULT_SUBREDDIT",
    "DEFAULT_QUERY",
    "DEFAULT_LIMIT",
    "SENTRY_DSN",
    "SENTRY_ENV",
    "SENTRY_TRACES_SAMPLE_RATE",
    "APP_ENV",
    "HTTP_TRUST_ENV_PROXY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings(monkeypatch):
    def _make(**env):
        base = {"REDDIT_ID": "test-id", "REDDIT_SECRET": "test-secret", "DEEPSEEK_API_KEY": "test-key"}
        base.update(env)
        for name, value in base.items():
            if value is None:
                monkeypatch.delenv(name, raising=False)
            else:
                monkeypatch.setenv(name, str(value))
        return get_settings()

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


def tool_response(arguments):
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {"type": "function", "function": {"name": "store_analysis", "arguments": arguments}}
                    ],
                }
            }
        ]
    }


def content_response(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


class FakeLLM:
    """Stands in for LLMClient. ``responder`` gets the request posts and returns a chat response."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []
        self._lock = threading.Lock()

    def chat(self, messages, max_tokens, tools=None, tool_choice=None, response_format=None, temperature=0):
        posts = json.loads(messages[1]["content"])["posts"]
        with self._lock:
            self.calls.append(
                {
                    "messages": messages,
                    "posts": posts,
                    "max_tokens": max_tokens,
                    "tools": tools,
                    "tool_choice": tool_choice,
                    "response_format": response_format,
                    "temperature": temperature,
                }
            )
        if isinstance(self.responder, Exception):
            raise self.responder
        if callable(self.responder):
            return self.responder(posts)
        return self.responder


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def responses():
    class _Responses:
        tool = staticmethod(tool_response)
        content = staticmethod(content_response)

    return _Responses


@pytest.fixture
def sample_posts():
    return [
        RawPost(title="FastAPI 1.0 released", content="Huge milestone for the project", source_url="https://reddit.com/r/python/a"),
        RawPost(title="requests is broken again", content="", source_url="https://reddit.com/r/python/b"),
        RawPost(title="", content="Which ORM do you use?", source_url="https://reddit.com/r/python/c"),
    ]


def assert_valid_analysis(analysis):
    assert analysis is not None
    assert isinstance(analysis.summary, str) and analysis.summary.strip()
    assert analysis.sentiment in {"positive", "neutral", "negative"}
    assert isinstance(analysis.sentiment_score, int) and not isinstance(analysis.sentiment_score, bool)
    assert 1 <= analysis.sentiment_score <= 10
    assert 2 <= len(analysis.key_insights) <= 3
    assert all(isinstance(x, str) and x.strip() for x in analysis.key_insights)


@pytest.fixture
def check_analysis():
    return assert_valid_analysis
