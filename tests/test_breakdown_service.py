# tests/test_breakdown_service.py

from __future__ import annotations

import pytest

from focusmate.llm.breakdown import NO_RESPONSE_TEXT, BreakdownService
from focusmate.llm.offline import OfflineLLMClient
from focusmate.llm.response_cache import ResponseCache

from .fakes import FakeBackend, FakeClock, FakeLLMClient


def _ticks(*values: float):
    it = iter(values)
    return lambda: next(it)


def test_prompt_asks_for_numbered_steps() -> None:
    prompt = BreakdownService.build_prompt("  mow the lawn ")
    assert '"1. [Action] (X min)"' in prompt
    assert "3-6 specific, doable steps" in prompt
    assert prompt.rstrip().endswith("Task: mow the lawn\n\nBreakdown:")


def test_breakdown_calls_model_and_parses(backend: FakeBackend, clock: FakeClock) -> None:
    llm = FakeLLMClient("1. Gather tools (5 min)\n2. Mow (20 min)")
    cache = ResponseCache(backend, clock=clock)
    service = BreakdownService(llm, cache, perf_counter=_ticks(1.0, 2.5))

    result = service.breakdown("Mow the lawn")

    assert result.from_cache is False
    assert result.inference_ms == pytest.approx(1500.0)
    assert result.parsed.steps == ["Gather tools", "Mow"]
    assert result.parsed.minutes == [5, 20]

    (messages, system_prompt), = llm.calls
    assert messages[0]["role"] == "user"
    assert "Task: Mow the lawn" in messages[0]["content"]
    assert system_prompt


def test_second_request_is_served_from_cache(backend: FakeBackend, clock: FakeClock) -> None:
    llm = FakeLLMClient("1. Gather tools (5 min)")
    service = BreakdownService(llm, ResponseCache(backend, clock=clock), perf_counter=_ticks(0.0, 0.2))

    first = service.breakdown("Mow the lawn")
    second = service.breakdown("  MOW the   lawn")

    assert len(llm.calls) == 1
    assert second.from_cache is True
    assert second.response == first.response
    assert second.inference_ms == first.inference_ms
    assert service.cache_stats().count == 1  # type: ignore[union-attr]

    service.clear_cache()
    assert service.cache_stats().count == 0  # type: ignore[union-attr]


def test_without_cache_every_request_hits_model() -> None:
    llm = FakeLLMClient("1. Step (1 min)")
    service = BreakdownService(llm)
    service.breakdown("x task")
    service.breakdown("x task")
    assert len(llm.calls) == 2
    assert service.cache_stats() is None
    assert service.cache_enabled is False


def test_empty_model_output_is_not_cached(backend: FakeBackend, clock: FakeClock) -> None:
    cache = ResponseCache(backend, clock=clock)
    service = BreakdownService(FakeLLMClient("   "), cache)

    result = service.breakdown("Task")
    assert result.response == NO_RESPONSE_TEXT
    assert not result.parsed
    assert len(cache) == 0


def test_empty_task_is_rejected() -> None:
    with pytest.raises(ValueError):
        BreakdownService(FakeLLMClient()).breakdown("   ")


def test_offline_client_uses_matching_template() -> None:
    service = BreakdownService(OfflineLLMClient())
    result = service.breakdown("start laundry")
    assert result.parsed.steps[0] == "Gather all dirty laundry from bedroom/bathroom"
    assert 3 <= len(result.parsed) <= 6


def test_offline_client_generic_plan() -> None:
    result = BreakdownService(OfflineLLMClient()).breakdown("write my novel")
    assert len(result.parsed) == 5
    assert "write my novel" in result.parsed.steps[1]
