"""dbrelay: replicate a relational database over an HTTP transfer session."""
from __future__ import annotations

from importlib import import_module
from typing import Any

from .config import PROTOCOL_VERSION, TransferConfig, load_config
from .errors import (
    AuthenticationFailure,
    ConfigurationError,
    CorruptedChunkError,
    DecodeError,
    EncodeError,
    ProtocolVersionMismatch,
    RelayError,
    SchemaToolError,
    SessionError,
    StoreError,
    TransmissionFailure,
)

__all__ = [
    "AuthenticationFailure",
    "ClientSession",
    "ConfigurationError",
    "CorruptedChunkError",
    "DecodeError",
    "EncodeError",
    "PROTOCOL_VERSION",
    "ProtocolVersionMismatch",
    "RelayError",
    "SchemaToolError",
    "SessionError",
    "StoreError",
    "TransferClient",
    "TransferConfig",
    "TransmissionFailure",
    "load_config",
]

_LAZY = {
    "ClientSession": ".client.session",
    "TransferClient": ".control.orchestrator",
}


def __getattr__(name: str) -> Any:
    if name in _LAZY:
        module = import_module(_LAZY[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
