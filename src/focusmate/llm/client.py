# src/focusmate/llm/client.py

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx
import openai
from openai import OpenAI

from ..config import Settings
from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

# model -> retry_at (monotonic); shared by all clients in the process
_BAD_MODELS: dict[str, float] = {}
BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _timeouts_from_env() -> dict[str, float]:
    """
    Timeouts for the console UX:
    - connect: 5s
    - read: 25s without data from the server
    - first token: 20s without content tokens
    """
    first_token = _env_float("FOCUSMATE_LLM_FIRST_TOKEN_TIMEOUT_SECONDS", 20.0)
    read_timeout = _env_float("FOCUSMATE_LLM_READ_TIMEOUT_SECONDS", 25.0)
    connect_timeout = _env_float("FOCUSMATE_LLM_CONNECT_TIMEOUT_SECONDS", 5.0)

    return {
        "first_token": first_token,
        "read": max(read_timeout, first_token),
        "connect": connect_timeout,
    }


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError subclasses APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set FOCUSMATE_OPENROUTER_API_KEY in .env (see .env.example)."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set FOCUSMATE_LLM_MODELS in .env (see .env.example)."
    if "LLM base URL is not set" in msg:
        return "LLM is not configured (missing base URL). Set FOCUSMATE_OPENROUTER_BASE_URL in .env (see .env.example)."
    return msg


def _chunk_text(chunk: Any) -> str | None:
    if not getattr(chunk, "choices", None):
        return None
    delta = getattr(chunk.choices[0], "delta", None)
    return getattr(delta, "content", None) if delta is not None else None


class OpenRouterLLMClient:
    """
    Streaming chat client for any OpenAI-compatible endpoint (OpenRouter by default).

    Behavior of stream_chat():
    - Tries models in the configured order.
    - No first content token within the first-token timeout -> next model.
    - 404 (model not available) -> park the model for an hour, next model.
    - Rate limit / network issues -> next model.
    - Auth issues -> fail fast.
    """

    def __init__(self, settings: Settings) -> None:
        api_key = (settings.openrouter_api_key or "").strip()
        base_url = (settings.openrouter_base_url or "").strip()

        if not api_key:
            raise RuntimeError("LLM API key is not set. Set FOCUSMATE_OPENROUTER_API_KEY in your .env.")
        if not base_url:
            raise RuntimeError("LLM base URL is not set. Set FOCUSMATE_OPENROUTER_BASE_URL in your .env.")

        self._models: List[str] = [m.strip() for m in settings.llm_models if m and m.strip()]
        self._headers: Dict[str, str] = dict(settings.extra_headers)
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        t = _timeouts_from_env()
        self._first_token_timeout = t["first_token"]
        self._timeout = httpx.Timeout(connect=t["connect"], read=t["read"], write=10.0, pool=t["connect"])

        # No automatic retries: falling back to the next model is quicker.
        self._client = OpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=self._timeout,
            max_retries=0,
        )

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set FOCUSMATE_LLM_MODELS in your .env.")

        last_error: Optional[Exception] = None
        now = time.monotonic()

        for model in self._models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s (first_token_timeout=%.1fs)", model, self._first_token_timeout)
            t0 = time.monotonic()
            deadline = t0 + self._first_token_timeout

            stream = None
            used_any = False

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                    extra_headers=self._headers or None,
                    messages=[{"role": "system", "content": system_prompt}, *messages],  # type: ignore[list-item]
                    timeout=self._timeout,
                )

                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break

                    content = _chunk_text(chunk)
                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s", model)
                    return

                if last_error is None:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError(
                        "LLM authentication failed. Check your API key (FOCUSMATE_OPENROUTER_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)

            finally:
                if stream is not None:
                    stream.close()

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
