import logging
from typing import Optional

from sqlalchemy.orm import Session

from services import history
from services.errors import SessionNotFound

logger = logging.getLogger(__name__)


def resolve_session(db: Session, session_id: Optional[str]) -> str:
    """Return the conversation id for this request, creating one when none is given.

    An id that does not exist is rejected; nothing is created in that case.
    """
    if not session_id:
        db_conv = history.create_conversation(db)
        logger.info("Started conversation %s", db_conv.id)
        return db_conv.id

    if history.get_conversation(db, session_id) is None:
        raise SessionNotFound("Invalid session ID")
    return session_id
