"""Generation against a session's remembered context."""

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chat_memory.core.exceptions import InvalidParameterError
from chat_memory.core.result import as_result
from chat_memory.schemas.chat_schema import GenerateResponse
from chat_memory.schemas.session_schema import Message
from chat_memory.services.base import utcnow
from chat_memory.services.context_window import ContextWindow

logger = structlog.get_logger()


class ChatService:
    """Sends a prompt with the session's context and records the exchange."""

    def __init__(
        self,
        llm: BaseChatModel,
        memory: ContextWindow,
        max_variants: int = 3,
    ) -> None:
        self._llm = llm
        self._memory = memory
        self._max_variants = max_variants

    @as_result
    async def generate(
        self,
        session_id: str,
        prompt: str,
        settings: dict[str, Any] | None = None,
        variants: int = 1,
    ) -> GenerateResponse:
        """Generate ``variants`` responses and store the prompt and first answer.

        Context comes from ``ContextWindow.read``, so a session with memory
        disabled is sent the prompt alone. The prompt and first answer are
        appended in a single write after the model returns, so a failed model
        call or a failed write stores nothing.
        """
        if not 1 <= variants <= self._max_variants:
            raise InvalidParameterError(
                f"variants must be between 1 and {self._max_variants}"
            )

        history = (await self._memory.read(session_id)).unwrap()
        input_messages = self._build_langchain_messages(history)
        input_messages.append(HumanMessage(content=prompt))

        prompted_at = utcnow()
        replies = await asyncio.gather(
            *(self._llm.ainvoke(input_messages) for _ in range(variants))
        )
        texts = [str(reply.content).strip() for reply in replies]

        answered_at = utcnow()
        (
            await self._memory.append_many(
                session_id,
                [
                    Message(
                        role="user",
                        content=prompt,
                        timestamp=prompted_at,
                        settings=settings,
                    ),
                    Message(
                        role="assistant",
                        content=texts[0],
                        timestamp=answered_at,
                        settings=settings,
                    ),
                ],
            )
        ).unwrap()

        logger.info(
            "Response generated",
            session_id=session_id,
            context_size=len(history),
            variants=len(texts),
        )
        return GenerateResponse(
            session_id=session_id,
            response=texts[0],
            variants=texts,
            context_size=len(history),
            created_at=answered_at,
        )

    @staticmethod
    def _build_langchain_messages(messages: Sequence[Message]) -> list[BaseMessage]:
        """Convert stored messages to LangChain message objects."""
        converted: list[BaseMessage] = []
        for msg in messages:
            if msg.role == "user":
                converted.append(HumanMessage(content=msg.content))
            elif msg.role == "assistant":
                converted.append(AIMessage(content=msg.content))
            elif msg.role == "system":
                converted.append(SystemMessage(content=msg.content))
        return converted
