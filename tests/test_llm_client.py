# tests/test_llm_client.py

from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import httpx
import openai
import pytest

from focusmate.config import Settings
from focusmate.llm import client as client_mod
from focusmate.llm.client import OpenRouterLLMClient, friendly_llm_error_message


def _chunk(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class _FakeStream:
    def __init__(self, texts: list[str | None]) -> None:
        self._texts = texts
        self.closed = False

    def __iter__(self):
        return iter(_chunk(t) for t in self._texts)

    def close(self) -> None:
        self.closed = True


class _FakeCompletions:
    def __init__(self, outcomes: dict[str, object]) -> None:
        self.outcomes = outcomes
        self.models: list[str] = []
        self.kwargs: list[dict] = []

    def create(self, **kwargs):
        self.models.append(kwargs["model"])
        self.kwargs.append(kwargs)
        outcome = self.outcomes[kwargs["model"]]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _status_error(cls, status: int):
    request = httpx.Request("POST", "https://openrouter.invalid/api/v1/chat/completions")
    return cls("boom", response=httpx.Response(status, request=request), body=None)


@pytest.fixture()
def keyed_settings(settings: Settings) -> Settings:
    return replace(settings, openrouter_api_key="sk-test", llm_models=["m/one", "m/two"])


@pytest.fixture(autouse=True)
def _reset_bad_models():
    client_mod._BAD_MODELS.clear()
    yield
    client_mod._BAD_MODELS.clear()


def _client_with(keyed_settings: Settings, outcomes: dict[str, object]) -> tuple[OpenRouterLLMClient, _FakeCompletions]:
    client = OpenRouterLLMClient(keyed_settings)
    completions = _FakeCompletions(outcomes)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))  # type: ignore[assignment]
    return client, completions


def test_missing_api_key_raises(settings: Settings) -> None:
    with pytest.raises(RuntimeError) as e:
        OpenRouterLLMClient(settings)
    assert "missing API key" in friendly_llm_error_message(e.value)


def test_streams_content_and_passes_generation_options(keyed_settings: Settings) -> None:
    stream = _FakeStream([None, "1. Go ", "(5 min)"])
    client, completions = _client_with(keyed_settings, {"m/one": stream})

    text = "".join(client.stream_chat([{"role": "user", "content": "hi"}], "sys"))

    assert text == "1. Go (5 min)"
    assert stream.closed
    kwargs = completions.kwargs[0]
    assert kwargs["temperature"] == keyed_settings.llm_temperature
    assert kwargs["max_tokens"] == keyed_settings.llm_max_tokens
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}


def test_not_found_model_is_parked_and_next_model_used(keyed_settings: Settings) -> None:
    client, completions = _client_with(
        keyed_settings,
        {"m/one": _status_error(openai.NotFoundError, 404), "m/two": _FakeStream(["ok"])},
    )

    assert "".join(client.stream_chat([], "sys")) == "ok"
    assert "m/one" in client_mod._BAD_MODELS

    completions.outcomes["m/two"] = _FakeStream(["again"])
    assert "".join(client.stream_chat([], "sys")) == "again"
    assert completions.models == ["m/one", "m/two", "m/two"]


def test_rate_limit_on_every_model(keyed_settings: Settings) -> None:
    client, _ = _client_with(
        keyed_settings,
        {
            "m/one": _status_error(openai.RateLimitError, 429),
            "m/two": _status_error(openai.RateLimitError, 429),
        },
    )
    with pytest.raises(RuntimeError, match="rate-limited"):
        "".join(client.stream_chat([], "sys"))


def test_auth_error_fails_fast(keyed_settings: Settings) -> None:
    client, completions = _client_with(
        keyed_settings,
        {"m/one": _status_error(openai.AuthenticationError, 401), "m/two": _FakeStream(["never"])},
    )
    with pytest.raises(RuntimeError, match="authentication failed"):
        "".join(client.stream_chat([], "sys"))
    assert completions.models == ["m/one"]


def test_empty_model_list(keyed_settings: Settings) -> None:
    client = OpenRouterLLMClient(replace(keyed_settings, llm_models=[]))
    with pytest.raises(RuntimeError) as e:
        list(client.stream_chat([], "sys"))
    assert "no models" in friendly_llm_error_message(e.value)
