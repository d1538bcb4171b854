"""Page serialization, compression and integrity digests.

A page travels as gzip-compressed JSON shaped ``{"header": [...], "data":
[[...], ...]}``. The end-of-table marker is the empty mapping ``{}`` and is
represented in Python as ``None``. Scalars JSON cannot carry natively are
wrapped as ``{"__dbr__": <kind>, "value": <text>}`` and restored on decode.
Mappings stored in a row that use the ``"__dbr__"`` key themselves travel as
a ``"dict"`` tag holding their key/value pairs.
"""
from __future__ import annotations

import base64
import gzip
import hashlib
import hmac
import json
import zlib
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Sequence, Tuple
from uuid import UUID

from ..errors import DecodeError, EncodeError

_TAG = "__dbr__"


@dataclass(frozen=True)
class Page:
    """An ordered batch of rows plus the column names they follow."""

    header: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "header", tuple(self.header))
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))

    @classmethod
    def from_rows(cls, header: Sequence[str], rows: Sequence[Sequence[Any]]) -> Optional["Page"]:
        """Build a page, or return the end-of-table marker when *rows* is empty."""

        if not rows:
            return None
        return cls(header=tuple(header), rows=tuple(tuple(row) for row in rows))

    def __len__(self) -> int:
        return len(self.rows)


def _encode_value(value: Any) -> Any:
    # datetime is a subclass of date, so it must be tested first.
    if isinstance(value, datetime):
        return {_TAG: "datetime", "value": value.isoformat()}
    if isinstance(value, date):
        return {_TAG: "date", "value": value.isoformat()}
    if isinstance(value, time):
        return {_TAG: "time", "value": value.isoformat()}
    if isinstance(value, timedelta):
        return {
            _TAG: "timedelta",
            "value": f"{value.days}:{value.seconds}:{value.microseconds}",
        }
    if isinstance(value, Decimal):
        return {_TAG: "decimal", "value": str(value)}
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {_TAG: "bytes", "value": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, UUID):
        return {_TAG: "uuid", "value": str(value)}
    raise TypeError(f"Object of type {type(value).__name__} is not transferable")


def _escape(value: Any) -> Any:
    # Mappings that already use the tag key travel as tagged key/value pairs.
    if isinstance(value, dict):
        escaped = {key: _escape(item) for key, item in value.items()}
        if _TAG in escaped:
            return {_TAG: "dict", "value": [[key, item] for key, item in escaped.items()]}
        return escaped
    if isinstance(value, (list, tuple)):
        return [_escape(item) for item in value]
    return value


_DECODERS = {
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "timedelta": lambda text: timedelta(*(int(part) for part in text.split(":"))),
    "decimal": Decimal,
    "bytes": lambda text: base64.b64decode(text.encode("ascii"), validate=True),
    "uuid": UUID,
    "dict": dict,
}


def _decode_object(obj: Dict[str, Any]) -> Any:
    kind = obj.get(_TAG)
    if kind is None or set(obj) != {_TAG, "value"}:
        return obj
    try:
        return _DECODERS[kind](obj["value"])
    except KeyError as exc:
        raise DecodeError(f"unknown value tag {kind!r}") from exc
    except (ValueError, TypeError, InvalidOperation) as exc:
        raise DecodeError(f"invalid {kind} value {obj['value']!r}") from exc


def encode(page: Optional[Page]) -> bytes:
    """Serialize and compress *page*; ``None`` encodes the end-of-table marker."""

    if page is None:
        document: Dict[str, Any] = {}
    else:
        document = {
            "header": list(page.header),
            "data": [[_escape(value) for value in row] for row in page.rows],
        }
    try:
        text = json.dumps(
            document,
            default=_encode_value,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=True,
        )
    except (TypeError, ValueError) as exc:
        raise EncodeError(str(exc)) from exc
    # A fixed mtime keeps re-encoding of identical input byte-identical.
    return gzip.compress(text.encode("utf-8"), mtime=0)


def digest(payload: bytes) -> str:
    """Return the SHA-256 hex digest of the compressed *payload*."""

    return hashlib.sha256(payload).hexdigest()


def verify(payload: bytes, expected: Optional[str]) -> bool:
    """Check *payload* against the checksum declared by the other side."""

    if not expected:
        return False
    return hmac.compare_digest(
        digest(payload).encode("ascii"), expected.strip().lower().encode("utf-8")
    )


def decode(payload: bytes) -> Optional[Page]:
    """Decompress and deserialize *payload*; ``None`` means end of table."""

    try:
        text = gzip.decompress(payload).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as exc:
        raise DecodeError(f"payload is not a valid compressed page: {exc}") from exc
    try:
        document = json.loads(text, object_hook=_decode_object)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"payload is not a valid page document: {exc}") from exc

    if document == {}:
        return None
    if not isinstance(document, dict) or set(document) != {"header", "data"}:
        raise DecodeError("page document must be {} or carry exactly header and data")
    header, data = document["header"], document["data"]
    if not isinstance(header, list) or not all(isinstance(name, str) for name in header):
        raise DecodeError("page header must be a list of column names")
    if not isinstance(data, list) or not all(isinstance(row, list) for row in data):
        raise DecodeError("page data must be a list of rows")
    if not data:
        raise DecodeError("a page without rows must be sent as the end-of-table marker")
    width = len(header)
    for index, row in enumerate(data):
        if len(row) != width:
            raise DecodeError(
                f"row {index} has {len(row)} values but the header names {width} columns"
            )
    return Page(header=tuple(header), rows=tuple(tuple(row) for row in data))


__all__ = ["Page", "decode", "digest", "encode", "verify"]
