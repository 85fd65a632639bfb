"""
Chat protocol error taxonomy. Raised by services, turned into JSON responses by the
handler registered in api.api. Only errors raised before streaming starts become HTTP
errors; failures during the stream are sent as a terminal ``error`` event instead.
"""


class ChatError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ChatError):
    status_code = 400


class InvalidSession(ChatError):
    status_code = 401


class NotFound(ChatError):
    status_code = 404


class PersistenceFailure(ChatError):
    status_code = 500


class ProviderFailure(ChatError):
    status_code = 502
