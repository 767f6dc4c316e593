from typing import Any


class SwitchboardError(Exception):
    """Base class for errors raised by switchboard itself."""


class ConfigError(SwitchboardError, ValueError):
    pass


class HTTPResponseError(SwitchboardError):
    """Raised by transports when the server answered with a non-2xx status.

    Carries the response (and the request that produced it) so the pipeline can
    classify it, and resend the same request after a token refresh.
    """

    def __init__(self, response):
        self.response = response
        self.request = response.request
        super().__init__(f"Request failed with status code {response.status}")


class TransportError(SwitchboardError):
    """Normalized form of a non-2xx response: ``status``, ``message`` and ``data``."""

    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data

    def __repr__(self):
        return f"TransportError(status={self.status!r}, message={self.message!r})"


class RefreshError(SwitchboardError):
    pass


class MaxRetriesExceededError(SwitchboardError):
    def __init__(self, message: str = "Max retry attempts reached", last_error=None):
        super().__init__(message)
        self.last_error = last_error


class LLMResponseError(SwitchboardError):
    pass
