"""Chat service forwarding a validated transcript to the completion provider.

The provider is an external collaborator: the service maps the transcript
to provider roles, passes the newest message's temperature through, and
returns the reply text. It does not inspect or post-process the reply.
"""

from __future__ import annotations

import logging
import time
import uuid

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError
from app.schemas.chat import ChatMessage, ChatResponse

logger = logging.getLogger(__name__)

ROLE_BY_AUTHOR = {
    "user": "user",
    "bot": "assistant",
    "system": "system",
}


def to_provider_messages(
    transcript: list[ChatMessage],
    *,
    system_prompt: str | None = None,
) -> list[dict[str, str]]:
    """Convert a transcript into provider chat messages, oldest first.

    Args:
        transcript: Validated messages, newest last.
        system_prompt: Optional system message placed before the transcript.

    Returns:
        List of ``{"role", "content"}`` dicts.
    """
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for msg in transcript:
        messages.append({"role": ROLE_BY_AUTHOR[msg.author], "content": msg.message.strip()})
    return messages


class ChatService:
    """Produce a reply for a chat transcript."""

    def __init__(
        self,
        llm: AbstractLLMClient,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.llm = llm
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens

    async def reply(self, transcript: list[ChatMessage]) -> ChatResponse:
        """Ask the provider for the next bot message.

        Args:
            transcript: Validated messages, the last one being answered.

        Returns:
            ChatResponse with a fresh id and the reply text.

        Raises:
            LLMAppError: If the provider call fails.
        """
        latest = transcript[-1]
        options: dict[str, float | int] = {"temperature": latest.temperature}
        if self.max_tokens is not None:
            options["max_tokens"] = self.max_tokens

        start = time.perf_counter()
        try:
            text = await self.llm.complete_chat(
                to_provider_messages(transcript, system_prompt=self.system_prompt),
                **options,
            )
        except RuntimeError as exc:
            logger.error(
                "chat.llm_failed",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "transcript_len": len(transcript),
                },
            )
            raise LLMAppError(
                code="llm_error",
                message="The language model could not produce a reply. Please try again later.",
            ) from exc

        logger.info(
            "chat.completed",
            extra={
                "transcript_len": len(transcript),
                "temperature": latest.temperature,
                "reply_chars": len(text),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return ChatResponse(id=uuid.uuid4().hex, response=text)
