"""Prompt templates for chat turns and title derivation.

Keeping prompts in one place makes them easy to audit, version, and A/B
test.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from grounded_chat.store.models import Sender

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.messages import BaseMessage

    from grounded_chat.store.models import Message

# ── 1. Chat turn ──────────────────────────────────────────────────────

CHAT_SYSTEM = """\
You are a helpful research assistant. Answer questions based on the
provided reference data.

Rules:
1. If the answer is not found in the provided context, clearly state that
   you don't have the information.
2. Keep your answers concise and directly related to the user's question
   and the provided context.
3. Do not make up information. If the context is insufficient, say so.
"""

CONTEXT_TURN_TEMPLATE = """\
Based on our previous conversation and the following potentially relevant \
context from the reference data:

--- CONTEXT START ---
{context}
--- CONTEXT END ---

Now, please answer my question: {question}"""

NO_CONTEXT_TURN_TEMPLATE = """\
Based on our previous conversation (if any), and noting that no reference \
data matched the current question, please answer: {question}"""


def build_user_turn(question: str, context: str) -> str:
    """Render the final user turn with or without a context block."""
    if context:
        return CONTEXT_TURN_TEMPLATE.format(context=context, question=question)
    return NO_CONTEXT_TURN_TEMPLATE.format(question=question)


def build_turn_prompt(history: Sequence[Message], question: str, context: str) -> list[BaseMessage]:
    """System instruction + history (oldest first) + the final user turn."""
    messages: list[BaseMessage] = [SystemMessage(content=CHAT_SYSTEM)]
    for msg in history:
        if msg.sender == Sender.MODEL:
            messages.append(AIMessage(content=msg.content))
        else:
            messages.append(HumanMessage(content=msg.content))
    messages.append(HumanMessage(content=build_user_turn(question, context)))
    return messages


# ── 2. Title derivation ───────────────────────────────────────────────

TITLE_SYSTEM = """\
You are a helpful assistant that generates concise titles for chat
conversations. The title should be 3-5 words maximum. Just return the
title itself, nothing else.
"""


def build_title_prompt(seed: str) -> list[BaseMessage]:
    return [
        SystemMessage(content=TITLE_SYSTEM),
        HumanMessage(
            content=(
                "Generate a very concise title (3-5 words maximum) for a conversation "
                f'that starts with or is about: "{seed}".'
            )
        ),
    ]
