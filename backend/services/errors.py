class ChatError(Exception):
    """Base for failures that carry a client-safe message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(ChatError):
    status_code = 400


class SessionNotFound(ChatError):
    status_code = 404


class UpstreamFailure(ChatError):
    """Provider or store failure once a reply stream has started.

    Headers are already on the wire at that point, so this is only ever logged.
    """

    status_code = 502
