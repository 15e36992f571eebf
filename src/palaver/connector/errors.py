"""Errors raised by the channel connector and authentication."""


class ConnectorError(Exception):
    """Base exception for connector and channel authentication failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class ConnectorAuthenticationError(ConnectorError):
    """Raised when a request or token cannot be authenticated."""

    def __init__(self, message: str = "Unauthorized Access. Request is not authorized", status_code: int = 401):
        super().__init__(message, status_code=status_code, retryable=False)


class ThrottledError(ConnectorError):
    """Raised when the channel rate limits the bot."""

    def __init__(self, retry_after: int | None = None):
        super().__init__("Request throttled by the channel", status_code=429, retryable=True)
        self.retry_after = retry_after


class NotFoundError(ConnectorError):
    """Raised when a conversation, activity or member does not exist."""

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404, retryable=False)
        self.resource = resource
