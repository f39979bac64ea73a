import codecs
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

import httpx

from widget.storage import SessionStore

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/ai-agent"
SESSION_HEADER = "X-Session-Id"
APOLOGY = "Sorry, something went wrong. Please try again."

IDLE = "idle"
AWAITING_RESPONSE = "awaiting-response"


class ChatController:
    """
    Client side of the support widget.

    Keeps the visible transcript and the active session id, sends turns to the
    backend and grows the trailing assistant turn while the reply streams in.
    """

    def __init__(
        self,
        base_url: str,
        storage: SessionStore,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.transcript: List[Dict[str, str]] = []
        self.session_id: Optional[str] = None
        self.state = IDLE
        self._client = client

    @asynccontextmanager
    async def _http(self):
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(base_url=self.base_url, timeout=None) as client:
            yield client

    def _snapshot(self) -> List[Dict[str, str]]:
        return [dict(turn) for turn in self.transcript]

    def _remember_session(self, session_id: str):
        self.session_id = session_id
        self.storage.set(session_id)

    async def load(self) -> List[Dict[str, str]]:
        """Restore the transcript of the stored session. Any failure leaves it empty."""
        stored = self.storage.get()
        if not stored:
            return self._snapshot()

        try:
            async with self._http() as client:
                res = await client.get(CHAT_PATH, params={"sessionId": stored})
                res.raise_for_status()
                data = res.json()
            messages = data.get("messages")
            if isinstance(messages, list):
                self.transcript = [{"role": m["role"], "content": m["content"]} for m in messages]
                self.session_id = data.get("sessionId") or stored
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug("History reload for %s skipped: %s", stored, e)
        return self._snapshot()

    async def send(self, text: str) -> AsyncIterator[List[Dict[str, str]]]:
        """Submit one user turn and yield the transcript after every visible change."""
        if self.state != IDLE or not text.strip():
            return

        self.transcript.append({"role": "user", "content": text})
        self.state = AWAITING_RESPONSE
        yield self._snapshot()

        payload = {"messages": self._snapshot(), "sessionId": self.session_id}
        reply_index = None
        try:
            async with self._http() as client:
                async with client.stream("POST", CHAT_PATH, json=payload) as res:
                    new_session = res.headers.get(SESSION_HEADER)
                    if new_session:
                        self._remember_session(new_session)
                    res.raise_for_status()

                    self.transcript.append({"role": "assistant", "content": ""})
                    reply_index = len(self.transcript) - 1
                    yield self._snapshot()

                    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
                    reply = ""
                    async for chunk in res.aiter_bytes():
                        reply += decoder.decode(chunk)
                        self.transcript[reply_index] = {"role": "assistant", "content": reply}
                        yield self._snapshot()

                    tail = decoder.decode(b"", final=True)
                    if tail:
                        reply += tail
                        self.transcript[reply_index] = {"role": "assistant", "content": reply}
                        yield self._snapshot()
        except (httpx.HTTPError, OSError) as e:
            logger.warning("Chat request failed: %s", e)
            apology = {"role": "assistant", "content": APOLOGY}
            if reply_index is None:
                self.transcript.append(apology)
            else:
                self.transcript[reply_index] = apology
            yield self._snapshot()
        finally:
            self.state = IDLE

    def reset(self):
        """Forget the transcript and the session; the next send starts a new conversation."""
        self.transcript = []
        self.session_id = None
        self.storage.clear()
        self.state = IDLE
