import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Set

from services import history, openrouter

logger = logging.getLogger(__name__)

# Strong references so pump tasks outlive a dropped client connection
_pump_tasks: Set[asyncio.Task] = set()

_END = object()


async def _pump(
    queue: asyncio.Queue,
    prompt: List[Dict[str, str]],
    conv_id: str,
    session_factory,
    model: Optional[str],
):
    full_response = ""
    try:
        async for chunk in openrouter.stream_chat(prompt, model=model):
            full_response += chunk
            await queue.put(chunk)
    except Exception:
        logger.exception("Provider stream failed for conversation %s", conv_id)
        await queue.put(_END)
        return

    save_reply(session_factory, conv_id, full_response)
    await queue.put(_END)


def save_reply(session_factory, conv_id: str, text: str):
    """Persist the finished assistant reply. Failures are logged, never raised."""
    try:
        with session_factory() as db:
            history.add_message(db, conv_id, history.AI, text)
    except Exception:
        logger.exception("Error saving AI message to DB for conversation %s", conv_id)


async def relay_reply(
    prompt: List[Dict[str, str]],
    conv_id: str,
    session_factory,
    model: Optional[str] = None,
) -> AsyncIterator[str]:
    """
    Streams the provider's reply chunk by chunk.

    The provider is consumed by a separate task that also stores the final
    reply, so a client disconnect only stops the forwarding side.
    """
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(_pump(queue, prompt, conv_id, session_factory, model))
    _pump_tasks.add(task)
    task.add_done_callback(_pump_tasks.discard)

    while True:
        chunk = await queue.get()
        if chunk is _END:
            break
        yield chunk
