"""Reconstruct a flat message log into prompt/response Takes."""

from collections.abc import Sequence
from typing import Any

from chat_memory.schemas.session_schema import Message
from chat_memory.schemas.take_schema import Take


def reconstruct(messages: Sequence[Message]) -> list[Take]:
    """Pair each user message with the assistant message that follows it.

    A user message opens a new Take, closing any open one. An assistant
    message fills the open Take (a later assistant message replaces an
    earlier answer) and its settings, when not ``None``, replace the prompt's.
    Assistant messages with no open Take and all system messages are
    skipped. A trailing unanswered prompt is emitted with ``response=None``.

    Raises:
        TypeError: if an element is not a ``Message``.
    """
    takes: list[Take] = []
    current: dict[str, Any] | None = None

    for position, message in enumerate(messages):
        if not isinstance(message, Message):
            raise TypeError(
                f"Expected Message at position {position}, "
                f"got {type(message).__name__}"
            )

        if message.role == "user":
            if current is not None:
                takes.append(Take(**current))
            current = {
                "index": len(takes),
                "prompt": message.content,
                "prompt_timestamp": message.timestamp,
                "response": None,
                "response_timestamp": None,
                "settings": message.settings,
            }
        elif message.role == "assistant" and current is not None:
            current["response"] = message.content
            current["response_timestamp"] = message.timestamp
            if message.settings is not None:
                current["settings"] = message.settings

    if current is not None:
        takes.append(Take(**current))

    return takes
