import os
import sys
import tempfile

import pytest
from sqlalchemy.orm import Session

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../backend")))

os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.gettempdir(), "techgear_support_import.db"))

from main import create_app
from models import db_models


@pytest.fixture
def app(tmp_path):
    """A fresh backend bound to its own SQLite file."""
    return create_app(f"sqlite:///{tmp_path / 'chat.db'}")


@pytest.fixture
def db_session(app):
    db: Session = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


class FakeProvider:
    """Stands in for services.openrouter.stream_chat and records each prompt it receives."""

    def __init__(self, chunks=("Hello", " from", " TechGear!"), fail_after=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.prompts = []

    async def __call__(self, messages, model=None, client=None):
        self.prompts.append([dict(m) for m in messages])
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("provider dropped the stream")
            yield chunk


@pytest.fixture
def provider():
    return FakeProvider()


def count_conversations(db: Session) -> int:
    return db.query(db_models.ConversationDB).count()


def count_messages(db: Session, conv_id=None) -> int:
    query = db.query(db_models.MessageDB)
    if conv_id:
        query = query.filter(db_models.MessageDB.conversation_id == conv_id)
    return query.count()
