import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from unittest.mock import patch

from conftest import FakeProvider, count_conversations
from services import history
from widget import controller as widget
from widget.storage import SessionStore


@pytest.fixture
def storage():
    return SessionStore()


def _backend_client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _drain(stream):
    return [snapshot async for snapshot in stream]


@pytest.mark.asyncio
async def test_send_streams_reply_and_remembers_session(app, storage, db_session):
    provider = FakeProvider(chunks=["We accept ", "returns ", "within 30 days."])
    with patch("services.openrouter.stream_chat", new=provider):
        async with _backend_client(app) as client:
            chat = widget.ChatController("http://test", storage, client=client)
            snapshots = await _drain(chat.send("What's your return policy?"))

    assert snapshots[0] == [{"role": "user", "content": "What's your return policy?"}]
    assert snapshots[1][-1] == {"role": "assistant", "content": ""}
    assert snapshots[-1] == [
        {"role": "user", "content": "What's your return policy?"},
        {"role": "assistant", "content": "We accept returns within 30 days."},
    ]
    # every snapshot after the placeholder only grows the trailing assistant turn
    assistant_texts = [s[-1]["content"] for s in snapshots[1:]]
    assert all(b.startswith(a) for a, b in zip(assistant_texts, assistant_texts[1:]))

    assert chat.state == widget.IDLE
    assert chat.session_id
    assert storage.get() == chat.session_id
    assert history.get_conversation(db_session, chat.session_id) is not None


@pytest.mark.asyncio
async def test_second_send_reuses_session(app, storage, db_session):
    provider = FakeProvider(chunks=["ok"])
    with patch("services.openrouter.stream_chat", new=provider):
        async with _backend_client(app) as client:
            chat = widget.ChatController("http://test", storage, client=client)
            await _drain(chat.send("first"))
            first_session = chat.session_id
            await _drain(chat.send("second"))

    assert chat.session_id == first_session
    assert count_conversations(db_session) == 1
    assert [t["content"] for t in chat.transcript] == ["first", "ok", "second", "ok"]


@pytest.mark.asyncio
async def test_blank_input_is_ignored(storage):
    chat = widget.ChatController("http://test", storage)
    assert await _drain(chat.send("   ")) == []
    assert chat.transcript == []
    assert chat.state == widget.IDLE


@pytest.mark.asyncio
async def test_send_while_awaiting_is_ignored(storage):
    chat = widget.ChatController("http://test", storage)
    chat.state = widget.AWAITING_RESPONSE
    assert await _drain(chat.send("hello")) == []
    assert chat.transcript == []


@pytest.mark.asyncio
async def test_transport_error_shows_apology(storage):
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    async with AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        chat = widget.ChatController("http://test", storage, client=client)
        snapshots = await _drain(chat.send("anyone there?"))

    assert snapshots[-1] == [
        {"role": "user", "content": "anyone there?"},
        {"role": "assistant", "content": widget.APOLOGY},
    ]
    assert chat.state == widget.IDLE
    assert chat.session_id is None


@pytest.mark.asyncio
async def test_error_status_shows_apology(app, storage):
    storage.set("stale-session")
    async with _backend_client(app) as client:
        chat = widget.ChatController("http://test", storage, client=client)
        chat.session_id = "stale-session"
        snapshots = await _drain(chat.send("hello"))

    assert [t["content"] for t in snapshots[-1]] == ["hello", widget.APOLOGY]
    assert chat.state == widget.IDLE


@pytest.mark.asyncio
async def test_reset_clears_transcript_and_storage(app, storage, db_session):
    provider = FakeProvider(chunks=["hi"])
    with patch("services.openrouter.stream_chat", new=provider):
        async with _backend_client(app) as client:
            chat = widget.ChatController("http://test", storage, client=client)
            await _drain(chat.send("hello"))
            old_session = chat.session_id

            chat.reset()
            assert chat.transcript == []
            assert chat.session_id is None
            assert storage.get() is None

            await _drain(chat.send("hello again"))

    assert chat.session_id != old_session
    assert count_conversations(db_session) == 2


@pytest.mark.asyncio
async def test_load_restores_history(app, storage):
    provider = FakeProvider(chunks=["Visa, Mastercard, PayPal, Apple Pay"])
    with patch("services.openrouter.stream_chat", new=provider):
        async with _backend_client(app) as client:
            first = widget.ChatController("http://test", storage, client=client)
            await _drain(first.send("What payment methods do you accept?"))

            reloaded = widget.ChatController("http://test", storage, client=client)
            transcript = await reloaded.load()

    assert transcript == first.transcript
    assert reloaded.session_id == first.session_id


@pytest.mark.asyncio
async def test_load_swallows_unknown_session(app, storage):
    storage.set("gone")
    async with _backend_client(app) as client:
        chat = widget.ChatController("http://test", storage, client=client)
        transcript = await chat.load()

    assert transcript == []
    assert chat.session_id is None


@pytest.mark.asyncio
async def test_load_without_stored_session_makes_no_request(storage):
    def handler(request: httpx.Request):
        raise AssertionError("no request expected")

    async with AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        chat = widget.ChatController("http://test", storage, client=client)
        assert await chat.load() == []


@pytest.mark.asyncio
async def test_multibyte_text_split_across_chunks(storage):
    body = "Café ☕".encode("utf-8")

    async def stream_body():
        for i in range(len(body)):
            yield body[i:i + 1]

    def handler(request: httpx.Request):
        return httpx.Response(200, headers={"X-Session-Id": "s1"}, content=stream_body())

    async with AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        chat = widget.ChatController("http://test", storage, client=client)
        snapshots = await _drain(chat.send("coffee?"))

    assert snapshots[-1][-1] == {"role": "assistant", "content": "Café ☕"}
    assert all("�" not in s[-1]["content"] for s in snapshots)
    assert storage.get() == "s1"


def test_session_store_round_trip():
    store = SessionStore("")
    assert store.get() is None
    store.set("abc123")
    assert store.get() == "abc123"
    store.clear()
    assert store.get() is None


class _UnwritableStore(SessionStore):
    def set(self, session_id: str):
        raise OSError("storage is read-only")


@pytest.mark.asyncio
async def test_storage_failure_shows_apology():
    def handler(request: httpx.Request):
        return httpx.Response(200, headers={"X-Session-Id": "s1"}, content=b"never shown")

    async with AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        chat = widget.ChatController("http://test", _UnwritableStore(), client=client)
        snapshots = await _drain(chat.send("hello"))

    assert snapshots[-1] == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": widget.APOLOGY},
    ]
    assert chat.state == widget.IDLE
