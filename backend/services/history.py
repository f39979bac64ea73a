from sqlalchemy.orm import Session
from models import db_models
from typing import List, Optional

USER = "user"
AI = "ai"


def create_conversation(db: Session):
    db_conv = db_models.ConversationDB()
    db.add(db_conv)
    db.commit()
    db.refresh(db_conv)
    return db_conv


def get_conversation(db: Session, conv_id: str) -> Optional[db_models.ConversationDB]:
    return db.query(db_models.ConversationDB).filter(db_models.ConversationDB.id == conv_id).first()


def add_message(db: Session, conv_id: str, sender: str, text: str):
    db_msg = db_models.MessageDB(conversation_id=conv_id, sender=sender, text=text)
    db.add(db_msg)
    db.commit()
    db.refresh(db_msg)
    return db_msg


def get_messages(db: Session, conv_id: str) -> List[db_models.MessageDB]:
    """All messages of a conversation, oldest first."""
    return (
        db.query(db_models.MessageDB)
        .filter(db_models.MessageDB.conversation_id == conv_id)
        .order_by(db_models.MessageDB.timestamp.asc(), db_models.MessageDB.id.asc())
        .all()
    )


def get_recent_messages(db: Session, conv_id: str, limit: int) -> List[db_models.MessageDB]:
    """The newest `limit` messages of a conversation, returned oldest first."""
    newest = (
        db.query(db_models.MessageDB)
        .filter(db_models.MessageDB.conversation_id == conv_id)
        .order_by(db_models.MessageDB.timestamp.desc(), db_models.MessageDB.id.desc())
        .limit(limit)
        .all()
    )
    newest.reverse()
    return newest
