"""Pydantic schemas and boundary parsing for the chat endpoint.

The endpoint accepts either one message object or the full transcript (a
non-empty array whose last element is the message to answer). Parsing never
raises: it returns a tagged ``ChatRequestAccepted | ChatRequestRejected``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, ValidationError

Author = Literal["system", "bot", "user"]


class ChatMessage(BaseModel):
    """A single chat message as sent by the browser client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: StrictStr = Field(..., min_length=1, description="Client-generated message id.")
    sent_at: float = Field(
        ...,
        alias="sentAt",
        strict=True,
        description="Client timestamp in milliseconds since the UNIX epoch.",
    )
    message: StrictStr = Field(..., min_length=1, description="Message text.")
    temperature: float = Field(
        ...,
        strict=True,
        ge=0.0,
        le=2.0,
        description="Sampling temperature requested for the reply.",
    )
    author: Author = Field(
        default="user",
        description="Who wrote the message; bot/system messages give the model context.",
    )


class ChatResponse(BaseModel):
    """Successful reply envelope."""

    id: str = Field(..., description="Server-generated id of this reply.")
    error: Literal[False] = Field(default=False, description="Always false on success.")
    response: str = Field(..., description="Text generated by the model.")


@dataclass(frozen=True)
class ChatRequestAccepted:
    messages: list[ChatMessage]

    @property
    def latest(self) -> ChatMessage:
        return self.messages[-1]


@dataclass(frozen=True)
class ChatRequestRejected:
    code: str
    message: str
    field: str | None = None


ChatRequestParseResult = ChatRequestAccepted | ChatRequestRejected

_single_adapter = TypeAdapter(ChatMessage)
_transcript_adapter = TypeAdapter(list[ChatMessage])

_REASONS = {
    "missing": "is required",
    "string_type": "is not a string",
    "float_type": "is not a number",
    "string_too_short": "must not be empty",
    "greater_than_equal": "is below the allowed minimum",
    "less_than_equal": "is above the allowed maximum",
    "literal_error": "has an unsupported value",
    "model_type": "is not an object",
    "model_attributes_type": "is not an object",
}


def _format_loc(loc: tuple[Any, ...]) -> str:
    parts: list[str] = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        else:
            parts.append(f".{item}" if parts else str(item))
    return "".join(parts) or "body"


def _rejection_from(exc: ValidationError) -> ChatRequestRejected:
    error = exc.errors(include_url=False)[0]
    field = _format_loc(tuple(error.get("loc", ())))
    reason = _REASONS.get(error.get("type", ""), error.get("msg", "is invalid"))
    return ChatRequestRejected(
        code="invalid_body",
        message=f"Field '{field}' {reason}.",
        field=field,
    )


def parse_chat_request(
    body: bytes | str,
    *,
    max_messages: int = 50,
    max_message_chars: int = 2000,
) -> ChatRequestParseResult:
    """Validate a raw request body against the chat contract.

    Args:
        body: Raw JSON request body.
        max_messages: Largest accepted transcript.
        max_message_chars: Longest accepted message text.

    Returns:
        ChatRequestAccepted with the transcript (newest message last), or
        ChatRequestRejected carrying a field-specific message.
    """
    text = body.decode("utf-8", "replace") if isinstance(body, bytes) else body
    if not text.strip():
        return ChatRequestRejected(
            code="missing_body",
            message="A body was not provided or incomplete.",
        )

    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return ChatRequestRejected(code="invalid_json", message="The body is not valid JSON.")

    try:
        if isinstance(payload, list):
            messages = _transcript_adapter.validate_python(payload)
        elif isinstance(payload, dict):
            messages = [_single_adapter.validate_python(payload)]
        else:
            return ChatRequestRejected(
                code="invalid_body",
                message="The body must be a message object or an array of messages.",
            )
    except ValidationError as exc:
        return _rejection_from(exc)

    if not messages:
        return ChatRequestRejected(
            code="missing_body",
            message="A body was not provided or incomplete.",
        )
    if len(messages) > max_messages:
        return ChatRequestRejected(
            code="transcript_too_long",
            message=f"A transcript may contain at most {max_messages} messages.",
        )
    for index, msg in enumerate(messages):
        if len(msg.message) > max_message_chars:
            field = f"[{index}].message" if isinstance(payload, list) else "message"
            return ChatRequestRejected(
                code="message_too_long",
                message=f"Field '{field}' exceeds {max_message_chars} characters.",
                field=field,
            )

    return ChatRequestAccepted(messages=messages)
