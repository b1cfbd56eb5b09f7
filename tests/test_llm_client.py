import io
import json
from http.client import IncompleteRead, RemoteDisconnected
from urllib.error import HTTPError, URLError

import pytest

from raze.llm.client import DEFAULT_OPENAI_URL, LLMClient, LLMRequestError


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self.body = body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return None

    def read(self):
        return self.body


def _capture_urlopen(monkeypatch, response: dict[str, object]) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout=None):
        captured["url"] = req.full_url
        captured["headers"] = {key.lower(): value for key, value in req.header_items()}
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse(json.dumps(response).encode("utf-8"))

    monkeypatch.setattr("raze.llm.client.request.urlopen", fake_urlopen)
    return captured


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ValueError):
        LLMClient(provider="claude", model="x", api_key="k")  # type: ignore[arg-type]


def test_openai_request_and_text_extraction(monkeypatch) -> None:
    captured = _capture_urlopen(
        monkeypatch,
        {"choices": [{"message": {"role": "assistant", "content": '{"actions": []}'}}]},
    )
    client = LLMClient(provider="openai", model="gpt-4o-mini", api_key="sk-test", timeout=12.0)

    text = client.complete("add a footer")

    assert text == '{"actions": []}'
    assert captured["url"] == DEFAULT_OPENAI_URL
    assert captured["headers"]["authorization"] == "Bearer sk-test"
    assert captured["timeout"] == 12.0
    payload = captured["payload"]
    assert payload["model"] == "gpt-4o-mini"
    assert payload["messages"][0]["role"] == "system"
    assert "edit_file" in payload["messages"][0]["content"]
    assert payload["messages"][1] == {"role": "user", "content": "add a footer"}


def test_gemini_request_and_text_extraction(monkeypatch) -> None:
    captured = _capture_urlopen(
        monkeypatch,
        {"candidates": [{"content": {"parts": [{"text": '{"actions": '}, {"text": "[]}"}]}}]},
    )
    client = LLMClient(provider="gemini", model="gemini-1.5-flash-latest", api_key="g-key")

    text = client.complete("make the button blue", current_file="./index.html")

    assert text == '{"actions": []}'
    assert captured["url"].endswith("/models/gemini-1.5-flash-latest:generateContent")
    assert "key=" not in captured["url"]
    assert captured["headers"]["x-goog-api-key"] == "g-key"
    user_text = captured["payload"]["contents"][0]["parts"][0]["text"]
    assert "Current file: ./index.html" in user_text
    assert "make the button blue" in user_text
    assert "index.html" in captured["payload"]["systemInstruction"]["parts"][0]["text"]


def test_custom_system_prompt_is_used(monkeypatch) -> None:
    captured = _capture_urlopen(monkeypatch, {"choices": [{"message": {"content": "ok"}}]})
    client = LLMClient(provider="openai", model="m", api_key="k", system_prompt="be brief")

    client.complete("hi")

    assert captured["payload"]["messages"][0]["content"] == "be brief"


def test_missing_api_key_raises_before_network(monkeypatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr("raze.llm.client.request.urlopen", fake_urlopen)
    client = LLMClient(provider="gemini", model="m", api_key=None)

    with pytest.raises(LLMRequestError, match="GEMINI_API_KEY"):
        client.complete("hi")


def test_http_error_includes_response_excerpt(monkeypatch) -> None:
    class FakeHTTPError(HTTPError):
        def __init__(self):
            super().__init__(
                url="https://example.com",
                code=401,
                msg="Unauthorized",
                hdrs=None,
                fp=io.BytesIO(b'{"error":{"message":"invalid api key"}}'),
            )

    def fake_urlopen(*_args, **_kwargs):
        raise FakeHTTPError()

    monkeypatch.setattr("raze.llm.client.request.urlopen", fake_urlopen)
    client = LLMClient(provider="openai", model="m", api_key="bad")

    with pytest.raises(LLMRequestError) as excinfo:
        client.complete("hi")

    assert "HTTP 401" in str(excinfo.value)
    assert "invalid api key" in str(excinfo.value)


def test_transport_error_raises(monkeypatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise URLError("name resolution failed")

    monkeypatch.setattr("raze.llm.client.request.urlopen", fake_urlopen)
    client = LLMClient(provider="openai", model="m", api_key="k")

    with pytest.raises(LLMRequestError, match="transport error"):
        client.complete("hi")


def test_invalid_json_response_raises(monkeypatch) -> None:
    monkeypatch.setattr(
        "raze.llm.client.request.urlopen", lambda *_a, **_k: FakeResponse(b"not-json")
    )
    client = LLMClient(provider="openai", model="m", api_key="k")

    with pytest.raises(LLMRequestError, match="parsing error"):
        client.complete("hi")


def test_response_without_text_raises(monkeypatch) -> None:
    monkeypatch.setattr(
        "raze.llm.client.request.urlopen",
        lambda *_a, **_k: FakeResponse(b'{"candidates": [{"finishReason": "SAFETY"}]}'),
    )
    client = LLMClient(provider="gemini", model="m", api_key="k")

    with pytest.raises(LLMRequestError, match="no text"):
        client.complete("hi")


def test_dropped_connection_raises_request_error(monkeypatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise RemoteDisconnected("Remote end closed connection without response")

    monkeypatch.setattr("raze.llm.client.request.urlopen", fake_urlopen)
    client = LLMClient(provider="gemini", model="m", api_key="k")

    with pytest.raises(LLMRequestError, match="connection error"):
        client.complete("hi")


def test_read_failure_mid_response_raises_request_error(monkeypatch) -> None:
    class BrokenResponse(FakeResponse):
        def read(self):
            raise ConnectionResetError("connection reset by peer")

    monkeypatch.setattr(
        "raze.llm.client.request.urlopen", lambda *_a, **_k: BrokenResponse(b"")
    )
    client = LLMClient(provider="openai", model="m", api_key="k")

    with pytest.raises(LLMRequestError, match="connection reset by peer"):
        client.complete("hi")


def test_incomplete_body_raises_request_error(monkeypatch) -> None:
    class TruncatedResponse(FakeResponse):
        def read(self):
            raise IncompleteRead(b'{"choices"', 40)

    monkeypatch.setattr(
        "raze.llm.client.request.urlopen", lambda *_a, **_k: TruncatedResponse(b"")
    )
    client = LLMClient(provider="openai", model="m", api_key="k")

    with pytest.raises(LLMRequestError):
        client.complete("hi")
