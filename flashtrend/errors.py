"""
Error taxonomy shared by the remote client and the data-access layer.

Validation failures are not represented here: they are pydantic
``ValidationError``s raised while parsing form payloads, before any
remote call is attempted.
"""


class FlashTrendError(Exception):
    """Base class for errors raised by the data-access layer."""


class ActorUnavailableError(FlashTrendError):
    """No authenticated / initialised remote client for the caller."""

    def __init__(self, message: str = "Actor not available") -> None:
        super().__init__(message)
        self.message = message


class RemoteCallError(FlashTrendError):
    """
    The remote service rejected the call or could not be reached.

    ``status_code`` carries the remote HTTP status when the transport
    reported one, otherwise 502.
    """

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
