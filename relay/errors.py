"""Exceptions raised on the ingestion side of the relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class InvalidArgument(RelayError, ValueError):
    """A caller submitted something that is not a message."""


class QueueingFailure(RelayError, RuntimeError):
    """The message could not be appended to the buffer.

    Raised when the wait for space in a bounded buffer times out, or when
    the relay stops while (or before) the caller is waiting.
    """
