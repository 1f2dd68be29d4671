"""
LLM: OpenAI (primary) or Hugging Face (fallback).
When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses HF router.
"""

import logging

import httpx
from openai import OpenAI

from product_assistant.core.config import (
    ANSWER_MAX_TOKENS,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
    TEMPERATURE,
)

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    """True when at least one LLM provider has credentials."""
    return bool(OPENAI_API_KEY or HF_API_KEY)


def _messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


def _call_openai(
    prompt: str, system: str | None, max_tokens: int, temperature: float, timeout: float
) -> str:
    """Call OpenAI chat completions. Returns generated text. API errors (incl. timeouts) propagate."""
    client = OpenAI(api_key=OPENAI_API_KEY, timeout=timeout, max_retries=0)
    response = client.chat.completions.create(
        model=OPENAI_LLM_MODEL,
        messages=_messages(prompt, system),
        max_tokens=max_tokens,
        temperature=temperature,
    )
    msg = response.choices[0].message if response.choices else None
    if not msg or not getattr(msg, "content", None):
        return ""
    out = (msg.content or "").strip()
    logger.info("[llm:openai] OUT response_len=%d", len(out))
    logger.debug("[llm:openai] OUT response_full=%r", out)
    return out


def _call_hf(
    prompt: str, system: str | None, max_tokens: int, temperature: float, timeout: float
) -> str:
    """
    Call Hugging Face router chat completions. Returns generated text, or "" on an HTTP
    error. A timeout raises TimeoutError, like an OpenAI timeout.
    """
    if not HF_API_KEY:
        logger.warning("[llm:hf] no HF_API_KEY")
        return ""
    headers = {"Authorization": f"Bearer {HF_API_KEY}", "Content-Type": "application/json"}
    payload = {
        "model": HF_LLM_MODEL,
        "messages": _messages(prompt, system),
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(HF_CHAT_URL, json=payload, headers=headers)
        if response.status_code != 200:
            logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
            return ""
        data = response.json()
    except httpx.TimeoutException as e:
        raise TimeoutError(f"Request timed out after {timeout:g} seconds") from e
    except httpx.HTTPError as e:
        logger.warning("[llm:hf] request failed: %s", e)
        return ""
    choices = data.get("choices") or []
    if choices and isinstance(choices[0], dict):
        msg = choices[0].get("message") or {}
        out = (msg.get("content") or "").strip()
        logger.info("[llm:hf] OUT response_len=%d", len(out))
        logger.debug("[llm:hf] OUT response_full=%r", out)
        return out
    return ""


def complete(
    prompt: str,
    system: str | None = None,
    max_tokens: int = ANSWER_MAX_TOKENS,
    temperature: float = TEMPERATURE,
    timeout: float = LLM_API_TIMEOUT,
) -> str:
    """
    Generate text for prompt (with an optional system message).
    Uses OpenAI when OPENAI_API_KEY is set; if OpenAI returns empty text, falls back to Hugging Face.
    """
    logger.info("[llm] IN  prompt_len=%d system_len=%d max_tokens=%d", len(prompt), len(system or ""), max_tokens)
    if OPENAI_API_KEY:
        out = _call_openai(prompt, system, max_tokens, temperature, timeout)
        if out:
            return out
        logger.info("[llm] OpenAI returned empty; falling back to Hugging Face")
    return _call_hf(prompt, system, max_tokens, temperature, timeout)
