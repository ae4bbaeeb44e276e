# src/focusmate/llm/offline.py

from __future__ import annotations

import re
from collections.abc import Iterable

from ..core.ports import ChatMessage
from ..templates.catalog import search_templates

_TASK_RE = re.compile(r"^Task:\s*(.+?)\s*$", re.MULTILINE)

_GENERIC_STEPS = (
    ("Clear a small space and gather what you need", 5),
    ("Start with the easiest part of: {task}", 10),
    ("Keep going on the main part for one short block", 15),
    ("Check what is left and finish one more piece", 10),
    ("Put things away and note what is done", 5),
)


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Answers a breakdown prompt with a numbered "N. Action (X min)" list: the
    steps of the first preloaded template matching the task, or a generic plan.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        match = _TASK_RE.search(user_text)
        task = match.group(1) if match else user_text.strip()

        steps: list[tuple[str, int]]
        templates = search_templates(task) if task else []
        if templates:
            steps = [(s.description, s.estimated_minutes) for s in templates[0].steps if not s.optional][:6]
        else:
            steps = [(desc.format(task=task or "the task"), mins) for desc, mins in _GENERIC_STEPS]

        for idx, (desc, mins) in enumerate(steps, start=1):
            yield f"{idx}. {desc} ({mins} min)\n"
