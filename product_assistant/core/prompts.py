"""
Prompt configuration: JSON-output instructions for the answer call and the
conversation summarization template.

Defaults live here; PROMPTS_CONFIG_PATH may point to a JSON file with the same
keys to override them (partial overrides are merged over the defaults).
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any

from product_assistant.core.config import PROMPTS_CONFIG_PATH

logger = logging.getLogger(__name__)

DEFAULT_JSON_OUTPUT_INSTRUCTIONS: dict[str, str] = {
    "systemPreamble": (
        "You are a friendly shopping assistant for a baby and kids products store. "
        "Answer the customer's question using the product information provided. "
        "Respond ONLY with a valid JSON object and nothing else."
    ),
    "answerFieldDetails": (
        'The JSON object must have an "answer" field: a helpful, conversational reply '
        "written as a single string. Personalise it with the user profile when one is given "
        "(e.g. the child's age), and never invent products that are not in the provided data."
    ),
    "relatedProductsFieldDetails": (
        'The JSON object must have a "relatedProducts" field: an array of the SKU strings of the '
        "products you mention or recommend, taken exactly from the provided data. "
        "Use an empty array when no product is relevant."
    ),
    "closingInstruction": (
        'Return the JSON object now, in the form {"answer": "...", "relatedProducts": ["SKU1", "SKU2"]}.'
    ),
}

DEFAULT_SUMMARIZATION_INSTRUCTION: str = (
    "Summarize the following conversation between the user {{userId}} and the shopping assistant. "
    "Keep the facts worth remembering for future conversations: the user's children (names, ages), "
    "preferences, budget, and products they showed interest in. Write at most 5 short sentences.\n\n"
    "Conversation:\n{{conversationHistoryText}}\n\nSummary:"
)

_lock = threading.Lock()
_loaded: dict[str, Any] | None = None


def _load_from_file(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Prompt config {path} must contain a JSON object")
    return data


def load_prompt_config(path: str | Path | None = None) -> dict[str, Any]:
    """
    Build the prompt config: defaults merged with the optional JSON override.
    Raises on an unreadable or malformed override file.
    """
    instructions = dict(DEFAULT_JSON_OUTPUT_INSTRUCTIONS)
    summarization = DEFAULT_SUMMARIZATION_INSTRUCTION
    raw_path = path if path is not None else PROMPTS_CONFIG_PATH
    if raw_path:
        file_path = Path(raw_path)
        if file_path.is_file():
            override = _load_from_file(file_path)
            instructions.update(override.get("jsonOutputInstructions") or {})
            summarization = override.get("summarizationInstruction") or summarization
            logger.info("[prompts] loaded prompt config from %s", file_path)
        else:
            logger.warning("[prompts] PROMPTS_CONFIG_PATH=%s not found; using defaults", file_path)
    return {
        "jsonOutputInstructions": instructions,
        "summarizationInstruction": summarization,
    }


def get_prompt_config() -> dict[str, Any]:
    """Return the process-wide prompt config, loading it on first use."""
    global _loaded
    with _lock:
        if _loaded is None:
            _loaded = load_prompt_config()
        return _loaded
