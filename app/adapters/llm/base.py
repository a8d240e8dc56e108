from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
    """Interface for chat completion providers."""

    @abstractmethod
    async def complete_chat(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> str:
        """Generate the next assistant message for a conversation.

        Args:
            messages: Chat messages as ``{"role": ..., "content": ...}`` dicts,
                oldest first.
            **kwargs: Provider-specific options (e.g., temperature, max_tokens).

        Returns:
            str: Text of the generated reply.

        Raises:
            RuntimeError: If the provider call fails or returns no content.
        """
        ...
