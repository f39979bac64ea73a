from typing import Optional

# Browser localStorage key the widget persists the session id under
SESSION_KEY = "chat-session-id"


class SessionStore:
    """Per-visitor holder of the last used session id.

    The front end seeds it from durable browser storage and writes `get()`
    back there after every change.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or None

    def get(self) -> Optional[str]:
        return self.session_id

    def set(self, session_id: str):
        self.session_id = session_id

    def clear(self):
        self.session_id = None
