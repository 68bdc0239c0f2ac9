from __future__ import annotations


class TransportError(Exception):
    """Base class for all oscdgram errors."""


class CapabilityError(TransportError):
    """UDP sockets are not available in this environment."""


class ConfigError(TransportError, ValueError):
    """Configuration cannot be used to build a transport."""


class SocketError(TransportError):
    """
    Runtime socket failure.

    Delivered to the host through the ``error`` event. The originating
    ``OSError`` (if any) is kept as ``__cause__`` and in ``cause``.
    """

    def __init__(self, operation: str, message: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def wrap(cls, operation: str, err: BaseException) -> "SocketError":
        if isinstance(err, OSError) and err.strerror:
            return cls(operation, err.strerror, err)
        return cls(operation, str(err) or type(err).__name__, err)


class MisuseError(TransportError):
    """Operation called in a state where it is not allowed (strict mode only)."""
