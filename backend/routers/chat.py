import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from sqlalchemy.orm import Session

from database import get_db, get_session_factory
from models.schemas import ChatRequest, HistoryMessage, HistoryResponse
from services import context, history, sessions
from services.errors import BadRequest, ChatError, SessionNotFound
from services.relay import relay_reply
from settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-agent", tags=["chat"])

MAX_MESSAGE_CHARS = 2000
SESSION_HEADER = "X-Session-Id"


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Stored timestamps are UTC; some backends (SQLite) hand them back without tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def validate_last_message(request: ChatRequest) -> str:
    """Trimmed, truncated text of the newest turn; raises BadRequest when there is none."""
    if not request.messages:
        raise BadRequest("Messages cannot be empty")

    text = context.extract_text(request.messages[-1].content).strip()
    if not text:
        raise BadRequest("Message content cannot be empty")
    return text[:MAX_MESSAGE_CHARS]


@router.post("")
async def chat_completion(
    request: ChatRequest,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    try:
        user_text = validate_last_message(request)
        conv_id = sessions.resolve_session(db, request.session_id)

        # user turn is written before the provider is called
        history.add_message(db, conv_id, history.USER, user_text)
        prompt = context.build_prompt(db, conv_id)
    except ChatError as e:
        return PlainTextResponse(e.message, status_code=e.status_code)
    except Exception:
        logger.exception("Error streaming chat completion")
        return PlainTextResponse("Failed to stream chat completion", status_code=500)

    return StreamingResponse(
        relay_reply(prompt, conv_id, session_factory, model=settings.get_llm_model()),
        media_type="text/plain; charset=utf-8",
        headers={SESSION_HEADER: conv_id},
    )


@router.get("")
def read_conversation(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    db: Session = Depends(get_db),
):
    try:
        if not session_id:
            raise BadRequest("sessionId is required")

        db_conv = history.get_conversation(db, session_id)
        if db_conv is None:
            raise SessionNotFound("Conversation not found")

        messages = [
            HistoryMessage(
                id=m.id,
                role=context.to_turn(m.sender, m.text)["role"],
                content=m.text,
                created_at=as_utc(m.timestamp),
            )
            for m in history.get_messages(db, db_conv.id)
        ]
        body = HistoryResponse(messages=messages, session_id=db_conv.id)
    except ChatError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception:
        logger.exception("Error fetching conversation history")
        return JSONResponse({"error": "Failed to fetch conversation history"}, status_code=500)

    return JSONResponse(body.model_dump(mode="json", by_alias=True))
