from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
import datetime
from database import Base


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class ConversationDB(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    messages = relationship(
        "MessageDB",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )


class MessageDB(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender = Column(String(8), nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("sender IN ('user', 'ai')", name="check_sender"),
    )

    conversation = relationship("ConversationDB", back_populates="messages")
