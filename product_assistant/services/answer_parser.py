"""
LLM answer parsing: turn the model's raw text into {"answer": str, "relatedProducts": [sku, ...]}.

The model is asked for bare JSON but sometimes wraps it in a ``` fence or adds prose
around it; both are tolerated. Anything else is an AnswerFormatError and the caller
falls back to returning the raw text.
"""

import json
import logging
import re
from typing import Any

from product_assistant.core.errors import AnswerFormatError

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "I had a little trouble formatting my response"

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def extract_json_block(raw: str) -> str:
    """Return the trimmed body of the first ``` / ```json fenced block, or raw unchanged."""
    if "```" in raw:
        match = _CODE_BLOCK.search(raw)
        if match and match.group(1):
            return match.group(1).strip()
    return raw


def _loads_with_repair(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as first_error:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise AnswerFormatError(f"LLM output is not valid JSON: {first_error}") from first_error
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise AnswerFormatError(f"LLM output is not valid JSON: {e}") from e


def parse_llm_answer(raw: Any) -> dict[str, Any]:
    """
    Parse raw LLM output into {"answer": str, "relatedProducts": list[str]}.

    Raises:
        AnswerFormatError: empty/non-string output, invalid JSON, or the wrong shape.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise AnswerFormatError("LLM output is not a non-empty string, cannot parse.")

    parsed = _loads_with_repair(extract_json_block(raw))
    if (
        not isinstance(parsed, dict)
        or not isinstance(parsed.get("answer"), str)
        or not isinstance(parsed.get("relatedProducts"), list)
    ):
        raise AnswerFormatError(
            "LLM output is not in the expected {answer: string, relatedProducts: array} format."
        )
    return {
        "answer": parsed["answer"],
        "relatedProducts": [s if isinstance(s, str) else str(s) for s in parsed["relatedProducts"]],
    }


def fallback_answer(raw: str | None) -> dict[str, Any]:
    """Response used when the LLM output could not be parsed: the raw text, no products."""
    return {
        "answer": f"{FALLBACK_PREFIX} perfectly. Here's the main information: {raw or 'Not available'}",
        "relatedProducts": [],
    }


def is_persistable(response: dict[str, Any] | None) -> bool:
    """Only well-formed, non-fallback answers are saved to history and cache."""
    if not response:
        return False
    answer = response.get("answer")
    return isinstance(answer, str) and answer.strip() != "" and FALLBACK_PREFIX not in answer
