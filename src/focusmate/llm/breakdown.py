# src/focusmate/llm/breakdown.py

from __future__ import annotations

"""
Task breakdown service: prompt -> model -> parsed steps.

The model call itself is opaque (any LLMClient). Successful responses are
stored in the response cache keyed by the task text, so asking for the same
task again skips the model entirely.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..breakdown.parser import ParsedBreakdown, parse_breakdown
from ..core.ports import LLMClient
from ..storage.keyed_store import StoreStats
from .response_cache import ResponseCache

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are FocusMate, a calm assistant that turns overwhelming tasks into small, doable steps."

PROMPT_TEMPLATE = """You are an AI assistant designed to help people with ADHD break down overwhelming tasks into concrete, actionable steps.

Your job: Take a vague task and break it down into 3-6 specific, doable steps.

Rules:
1. Use numbered format: "1. [Action] (X min)"
2. Keep each step under 2 sentences
3. Use simple, clear language
4. Estimate realistic time per step in minutes
5. Make each step feel like a "quick win"
6. DO NOT use sub-bullets, nested lists, or placeholder text like "[Clear action]"
7. Each step must have (X min) with an actual number

Example format:
1. Gather all necessary tools and supplies (5 min)
2. Remove debris from the yard (20 min)
3. Sweep the entire area (15 min)
4. Mow the lawn at desired height (45 min)

Task: {task}

Breakdown:"""

NO_RESPONSE_TEXT = "No response generated"


@dataclass(frozen=True, slots=True)
class BreakdownResult:
    task: str
    response: str
    from_cache: bool
    inference_ms: float
    parsed: ParsedBreakdown


class BreakdownService:
    def __init__(
        self,
        llm: LLMClient,
        cache: ResponseCache | None = None,
        *,
        perf_counter: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._llm = llm
        self._cache = cache
        self._perf_counter = perf_counter

    @property
    def cache_enabled(self) -> bool:
        return self._cache is not None

    @staticmethod
    def build_prompt(task: str) -> str:
        return PROMPT_TEMPLATE.format(task=task.strip())

    def generate(self, prompt: str) -> str:
        """Run one prompt through the model and join the streamed chunks."""
        chunks = self._llm.stream_chat([{"role": "user", "content": prompt}], SYSTEM_PROMPT)
        return "".join(chunks).strip()

    def breakdown(self, task: str) -> BreakdownResult:
        """
        Break a task into steps.

        Raises ValueError for an empty task, and RuntimeError (from the LLM
        client) when no model could answer.
        """
        task = (task or "").strip()
        if not task:
            raise ValueError("Task text is empty.")

        if self._cache is not None:
            cached = self._cache.get(task)
            if cached is not None:
                return BreakdownResult(
                    task=task,
                    response=cached.response,
                    from_cache=True,
                    inference_ms=cached.inference_ms,
                    parsed=parse_breakdown(cached.response),
                )

        logger.info("Generating breakdown for: %r", task)
        started = self._perf_counter()
        response = self.generate(self.build_prompt(task))
        inference_ms = (self._perf_counter() - started) * 1000.0
        logger.info("Generated response in %.0fms", inference_ms)

        if not response:
            response = NO_RESPONSE_TEXT
        elif self._cache is not None:
            self._cache.set(task, response, inference_ms)

        return BreakdownResult(
            task=task,
            response=response,
            from_cache=False,
            inference_ms=inference_ms,
            parsed=parse_breakdown(response),
        )

    def cache_stats(self) -> StoreStats | None:
        return self._cache.stats() if self._cache is not None else None

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
