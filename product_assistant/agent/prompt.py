"""
Prompt assembly for a chat turn: JSON-output instructions, user profile, long-term
memory, recent history and the current query; plus the system message carrying the
retrieved product context.
"""

from typing import Any

RAG_SYSTEM_MESSAGE = (
    "You are a helpful human like chat bot. Use relevant provided context and chat history "
    "to answer the query at the end. Answer in full. If you don't know the answer, just say "
    "that you don't know, don't try to make up an answer."
)


def _field(value: Any) -> str:
    return str(value) if value else ""


def _profile_block(user_name: str, children: list[dict[str, Any]]) -> str:
    if not user_name and not children:
        return ""
    lines = ["User profile:"]
    if user_name:
        lines.append(f"- Name: {user_name}")
    if children:
        lines.append("- Children:")
        for child in children:
            lines.append(
                f"  - Name: {_field(child.get('name'))}, Age: {_field(child.get('age'))}, "
                f"Gender: {_field(child.get('gender'))}, Birthday: {_field(child.get('birthday'))}"
            )
    return "\n".join(lines) + "\n\n"


def build_chat_prompt(
    instructions: dict[str, str],
    query: str,
    user_id: str,
    user_name: str = "",
    children: list[dict[str, Any]] | None = None,
    memory: str = "",
    history_text: str = "",
) -> str:
    """
    Build the user prompt for the answer call. Sections appear in a fixed order and
    empty sections (profile, memory, history) are omitted.
    """
    prompt = (
        f"{instructions.get('systemPreamble', '')}\n\n"
        f"{instructions.get('answerFieldDetails', '')}\n\n"
        f"{instructions.get('relatedProductsFieldDetails', '')}\n\n"
    )
    prompt += _profile_block(user_name, children or [])
    if memory and memory.strip():
        prompt += f"Relevant past information for {user_id}:\n{memory}\n\n"
    if history_text:
        prompt += f"Current conversation history:\n{history_text}\n\n"
    prompt += f"User's current query: {query}\n\n{instructions.get('closingInstruction', '')}"
    return prompt


def build_rag_system_message(chunks: list[dict[str, Any]]) -> str:
    """System message with the retrieved product documents appended as data."""
    context = "\n\n".join((c.get("text") or "").strip() for c in chunks if (c.get("text") or "").strip())
    return f"{RAG_SYSTEM_MESSAGE}\nData:\n{context}" if context else RAG_SYSTEM_MESSAGE
