import json
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

from fragboard import insights
from fragboard.insights import (
    InsightClient,
    build_prompt,
    format_ranking_summary,
    EMPTY_ANSWER_MESSAGE,
    FAILURE_MESSAGE,
    MISSING_KEY_MESSAGE,
)


class _FakeResponse:
    def __init__(self, payload):
        self._body = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def rows():
    return [
        {"nick": "Ghost", "kd": 1.875, "damage": 25000, "assists": 45},
        {"nick": "Viper", "kd": 90 / 110, "damage": 18000, "assists": 80},
    ]


@pytest.fixture
def client():
    return InsightClient(api_key="test-key", model="test-model", retry_sleep_seconds=0)


def test_summary_lines_keep_row_order_and_precision(rows):
    summary = format_ranking_summary(rows)
    assert summary.splitlines() == [
        "Ghost: KD 1.88, Damage 25000, Assists 45",
        "Viper: KD 0.82, Damage 18000, Assists 80",
    ]


def test_summary_top_n(rows):
    assert format_ranking_summary(rows, top_n=1) == "Ghost: KD 1.88, Damage 25000, Assists 45"


def test_prompt_mentions_season_and_data(rows):
    prompt = build_prompt(rows, "Season 1 - Summer 2024")
    assert "Season 1 - Summer 2024" in prompt
    assert "MVP" in prompt
    assert "Viper: KD 0.82" in prompt


def test_missing_key_returns_fallback(monkeypatch, rows):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)

    def _should_not_call(*args, **kwargs):
        raise AssertionError("network should not be used without a key")

    monkeypatch.setattr(insights, "urlopen", _should_not_call)
    client = InsightClient()
    assert not client.enabled
    assert client.generate(rows, "S1") == MISSING_KEY_MESSAGE


def test_key_falls_back_to_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "fallback")
    assert InsightClient().api_key == "fallback"


def test_generate_returns_model_text(monkeypatch, client, rows):
    captured = {}

    def _fake_urlopen(req, timeout=None):
        captured["url"] = req.full_url
        captured["body"] = json.loads(req.data.decode("utf-8"))
        return _FakeResponse(_answer("Ghost carried the season."))

    monkeypatch.setattr(insights, "urlopen", _fake_urlopen)

    assert client.generate(rows, "S1") == "Ghost carried the season."
    assert "test-model:generateContent" in captured["url"]
    assert "Ghost: KD 1.88" in captured["body"]["contents"][0]["parts"][0]["text"]


def test_generate_retries_once_on_429(monkeypatch, client, rows):
    calls = {"count": 0}

    def _fake_urlopen(req, timeout=None):
        calls["count"] += 1
        if calls["count"] == 1:
            raise HTTPError(req.full_url, 429, "Too Many Requests", hdrs=None, fp=BytesIO(b""))
        return _FakeResponse(_answer("Second time lucky."))

    monkeypatch.setattr(insights, "urlopen", _fake_urlopen)

    assert client.generate(rows, "S1") == "Second time lucky."
    assert calls["count"] == 2


def test_generate_http_failure_returns_fallback(monkeypatch, client, rows, caplog):
    def _fake_urlopen(req, timeout=None):
        raise HTTPError(req.full_url, 500, "Server Error", hdrs=None, fp=BytesIO(b""))

    monkeypatch.setattr(insights, "urlopen", _fake_urlopen)

    with caplog.at_level("WARNING"):
        assert client.generate(rows, "S1") == FAILURE_MESSAGE
    assert "Insight request failed" in caplog.text


def test_generate_network_failure_returns_fallback(monkeypatch, client, rows):
    def _fake_urlopen(req, timeout=None):
        raise URLError("offline")

    monkeypatch.setattr(insights, "urlopen", _fake_urlopen)
    assert client.generate(rows, "S1") == FAILURE_MESSAGE


def test_generate_empty_answer(monkeypatch, client, rows):
    monkeypatch.setattr(insights, "urlopen", lambda req, timeout=None: _FakeResponse({"candidates": []}))
    assert client.generate(rows, "S1") == EMPTY_ANSWER_MESSAGE


def test_extract_text_joins_parts():
    response = {"candidates": [{"content": {"parts": [{"text": "One. "}, {"text": "Two."}]}}]}
    assert InsightClient.extract_text(response) == "One. Two."


def test_generate_connection_reset_returns_fallback(monkeypatch, client, rows):
    def _fake_urlopen(req, timeout=None):
        raise ConnectionResetError("peer reset")

    monkeypatch.setattr(insights, "urlopen", _fake_urlopen)
    assert client.generate(rows, "S1") == FAILURE_MESSAGE


def test_generate_undecodable_body_returns_fallback(monkeypatch, client, rows):
    class _BadBody(_FakeResponse):
        def read(self):
            return b"\xff\xfe\xfa"

    monkeypatch.setattr(insights, "urlopen", lambda req, timeout=None: _BadBody({}))
    assert client.generate(rows, "S1") == FAILURE_MESSAGE


def test_generate_list_body_is_empty_answer(monkeypatch, client, rows):
    monkeypatch.setattr(insights, "urlopen", lambda req, timeout=None: _FakeResponse([1, 2]))
    assert client.generate(rows, "S1") == EMPTY_ANSWER_MESSAGE


@pytest.mark.parametrize("response", [
    [1, 2],
    {"candidates": ["not a dict"]},
    {"candidates": {"content": "x"}},
    {"candidates": [{"content": "text"}]},
    {"candidates": [{"content": {"parts": "text"}}]},
])
def test_extract_text_malformed_shapes(response):
    assert InsightClient.extract_text(response) == ""
