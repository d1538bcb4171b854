"""Exception hierarchy shared by the transfer client."""
from __future__ import annotations

from typing import Optional


class RelayError(RuntimeError):
    """Base class for every error the transfer client reports."""


class ConfigurationError(RelayError, ValueError):
    """Raised when transfer settings are missing or invalid."""


class SessionError(RelayError):
    """Raised for failures talking to the remote transfer endpoint."""


class SessionClosedError(SessionError):
    """Raised when a session is used before ``open()`` or after ``close()``."""


class ProtocolVersionMismatch(SessionError):
    """The remote endpoint speaks a different protocol version."""

    def __init__(self, remote_url: str, message: str = "") -> None:
        self.remote_url = remote_url
        self.message = message
        text = f"{remote_url} is running a different version of dbrelay."
        if message:
            text = f"{text}\n{message}"
        super().__init__(text)


class AuthenticationFailure(SessionError):
    """The remote endpoint rejected the supplied credentials."""

    def __init__(self, remote_url: str) -> None:
        self.remote_url = remote_url
        super().__init__(f"Bad credentials given for {remote_url}")


class TransmissionFailure(SessionError):
    """Any transport level failure that is not a corrupted chunk."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CorruptedChunkError(TransmissionFailure):
    """A page kept failing checksum verification past the retry limit."""

    def __init__(self, table: str, offset: int, attempts: int) -> None:
        self.table = table
        self.offset = offset
        self.attempts = attempts
        super().__init__(
            f"Page of table {table} at offset {offset} still corrupted after {attempts} attempts"
        )


class DecodeError(RelayError, ValueError):
    """A verified payload could not be decompressed or deserialized."""


class EncodeError(RelayError, TypeError):
    """A local row holds a value the page codec cannot carry."""


class StoreError(RelayError):
    """The local database refused a read or write."""


class SchemaToolError(RelayError):
    """The external schema tool exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, output: str) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Schema tool {' '.join(self.command)!r} failed with exit status {returncode}"
        )


__all__ = [
    "AuthenticationFailure",
    "ConfigurationError",
    "CorruptedChunkError",
    "DecodeError",
    "EncodeError",
    "ProtocolVersionMismatch",
    "RelayError",
    "SchemaToolError",
    "SessionClosedError",
    "SessionError",
    "StoreError",
    "TransmissionFailure",
]
