import pytest
import requests

from reddit_pulse.errors import ConfigError, EnrichmentDegraded
from reddit_pulse.llm_client import LLMClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ""

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def post_calls(monkeypatch):
    calls = []

    def _install(result):
        def fake_post(url, json=None, headers=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(requests, "post", fake_post)
        return calls

    return _install


def test_chat_posts_openai_compatible_payload(post_calls, make_settings):
    calls = post_calls(FakeResponse(body={"choices": []}))
    client = LLMClient(make_settings(DEEPSEEK_BASE_URL="https://llm.example/"))
    tools = [{"type": "function", "function": {"name": "store_analysis", "parameters": {}}}]
    data = client.chat(
        [{"role": "user", "content": "hi"}],
        max_tokens=2000,
        tools=tools,
        tool_choice={"type": "function", "function": {"name": "store_analysis"}},
    )

    assert data == {"choices": []}
    call = calls[0]
    assert call["url"] == "https://llm.example/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer test-key"
    assert call["timeout"] == 60.0
    assert call["json"]["model"] == "deepseek-chat"
    assert call["json"]["temperature"] == 0
    assert call["json"]["max_tokens"] == 2000
    assert call["json"]["tools"] == tools
    assert "response_format" not in call["json"]


def test_chat_json_object_mode(post_calls, settings):
    calls = post_calls(FakeResponse(body={"choices": []}))
    LLMClient(settings).chat([], max_tokens=100, response_format={"type": "json_object"})
    assert calls[0]["json"]["response_format"] == {"type": "json_object"}
    assert "tools" not in calls[0]["json"]


@pytest.mark.parametrize(
    "result",
    [
        requests.Timeout("read timed out"),
        requests.ConnectionError("refused"),
        FakeResponse(status_code=503, text="overloaded"),
        FakeResponse(status_code=200, body=None, text="<html>"),
        FakeResponse(status_code=200, body=["not", "an", "object"]),
    ],
)
def test_provider_failures_raise_enrichment_degraded(post_calls, settings, result):
    post_calls(result)
    with pytest.raises(EnrichmentDegraded):
        LLMClient(settings).chat([], max_tokens=100)


def test_missing_key_is_config_error(post_calls, make_settings):
    calls = post_calls(FakeResponse(body={}))
    with pytest.raises(ConfigError):
        LLMClient(make_settings(DEEPSEEK_API_KEY=None)).chat([], max_tokens=100)
    assert calls == []
