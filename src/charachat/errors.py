"""Error taxonomy shared by the server pipeline and the chat client.

Hides which failures are fatal for a turn and which are swallowed:
- ConfigurationError and ProviderError end a turn with a visible error
- DecodeError never escapes the stream decoder
- CancellationSignal is not a failure and is never shown to the user
- NoTargetError is reported through a turn outcome, not raised to the UI
"""


class CharachatError(Exception):
    """Base class for all charachat errors."""


class ConfigurationError(CharachatError):
    """A backend credential or endpoint required for a request is missing."""


class ProviderError(CharachatError):
    """A chat-completion backend answered with a non-2xx status.

    Attributes:
        status: HTTP status reported by the backend (None for connection failures)
        body: Raw response body as returned by the backend
    """

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (status {self.status})"
        return base


class DecodeError(CharachatError):
    """A single event-stream payload could not be parsed."""


class CancellationSignal(CharachatError):
    """The operation's cancellation token was triggered."""


class NoTargetError(CharachatError):
    """Regenerate was requested without an AI reply preceded by a user message."""


class BlobNotFoundError(CharachatError):
    """A blob reference does not resolve to stored bytes."""
