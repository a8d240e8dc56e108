from fastapi import APIRouter, Request, Response

from app.adapters.llm.factory import create_llm_client
from app.core.config import settings
from app.core.errors import ValidationAppError
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import ChatRequestRejected, ChatResponse, parse_chat_request
from app.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])

_llm_client = create_llm_client()
_chat_service = ChatService(
    llm=_llm_client,
    system_prompt=settings.llm.system_prompt,
    max_tokens=settings.llm.max_tokens,
)


@router.post(
    "/sendMessage",
    response_model=ChatResponse,
    responses={
        400: {"description": "Invalid body"},
        403: {"description": "Client address could not be detected"},
        405: {"description": "Only POST is allowed"},
        429: {"description": "Local, global per-minute or global daily rate limit reached"},
        500: {"description": "Counter store or language model failure"},
    },
)
async def send_message(request: Request, response: Response) -> ChatResponse:
    """Reply to the newest message of a chat transcript.

    The body is either a single message object or the transcript as an array
    of messages (newest last). Processing order:

    1. Validate the body (400 on the first invalid field).
    2. Layered rate limits: per-client minute, global minute, global day
       (403 unidentified client, 429 limit reached, 500 store failure).
    3. Forward the transcript to the completion provider.

    Returns:
        ChatResponse: Generated reply with a fresh id.
    """
    parsed = parse_chat_request(
        await request.body(),
        max_messages=settings.app.max_transcript_messages,
        max_message_chars=settings.app.max_message_chars,
    )
    if isinstance(parsed, ChatRequestRejected):
        raise ValidationAppError(
            code=parsed.code,
            message=parsed.message,
            details={"field": parsed.field} if parsed.field else None,
        )

    await enforce_rate_limit(request, response)

    return await _chat_service.reply(parsed.messages)
