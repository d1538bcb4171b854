"""HTTP client for a remote dbrelay transfer session."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit, urlunsplit

import httpx
from pydantic import ValidationError

from ..common.formatting import mask_url
from ..config import CHECKSUM_HEADER, DEFAULT_TIMEOUT, PROTOCOL_VERSION, VERSION_HEADER
from ..errors import (
    AuthenticationFailure,
    ProtocolVersionMismatch,
    SessionClosedError,
    TransmissionFailure,
)
from .models import ChunkEnvelope, TableManifest

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_PRECONDITION_FAILED = 412
HTTP_EXPECTATION_FAILED = 417


def _split_credentials(url: str) -> Tuple[str, Optional[Tuple[str, str]]]:
    """Strip ``user:password@`` from *url* and return it as basic auth."""

    parts = urlsplit(url)
    if parts.username is None and parts.password is None:
        return url, None
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    bare = urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))
    return bare, (unquote(parts.username or ""), unquote(parts.password or ""))


class ClientSession:
    """One transfer conversation with a remote endpoint.

    The session locator is only assigned by an explicit :meth:`open`. Every
    request carries the protocol version header. A session is closed once and
    cannot be reused afterwards.
    """

    def __init__(
        self,
        remote_url: str,
        *,
        version: str = PROTOCOL_VERSION,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        auth: Optional[Tuple[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.remote_url = mask_url(remote_url.rstrip("/"))
        self.version = version
        self._session_path: Optional[str] = None
        self._closed = False
        base_url, url_auth = _split_credentials(remote_url.rstrip("/"))
        if client is None:
            self._client = httpx.Client(
                base_url=base_url,
                timeout=timeout,
                auth=auth or url_auth,
            )
            self._owns_client = True
            self._request_auth = None
        else:
            self._client = client
            self._owns_client = False
            self._request_auth = auth or url_auth

    @classmethod
    @contextmanager
    def start(cls, remote_url: str, **kwargs: Any) -> Iterator["ClientSession"]:
        """Yield a session and close it on every exit path."""

        session = cls(remote_url, **kwargs)
        try:
            yield session
        except BaseException:
            session._close_after_failure()
            raise
        else:
            session.close()

    @property
    def session_path(self) -> Optional[str]:
        return self._session_path

    @property
    def closed(self) -> bool:
        return self._closed

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {VERSION_HEADER: self.version}
        headers.update(kwargs.pop("headers", {}))
        if self._request_auth is not None:
            kwargs.setdefault("auth", self._request_auth)
        try:
            return self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransmissionFailure(
                f"{method} {self.remote_url}/{path} failed: {exc}"
            ) from exc

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        if response.status_code == HTTP_EXPECTATION_FAILED:
            raise ProtocolVersionMismatch(self.remote_url, response.text.strip())
        if response.status_code == HTTP_UNAUTHORIZED:
            raise AuthenticationFailure(self.remote_url)
        raise TransmissionFailure(
            f"{action} failed with HTTP {response.status_code}: {response.text.strip()[:200]}",
            status_code=response.status_code,
        )

    def _resource(self, *parts: str) -> str:
        if self._closed:
            raise SessionClosedError("Session has been closed and cannot be reused")
        if self._session_path is None:
            raise SessionClosedError("Session is not open; call open() first")
        return "/".join([self._session_path, *parts])

    def verify(self) -> None:
        """Handshake with the server root before any data is exchanged."""

        if self._closed:
            raise SessionClosedError("Session has been closed and cannot be reused")
        response = self._request("GET", "/")
        self._raise_for_status(response, "Handshake")
        logger.debug("Handshake with %s succeeded", self.remote_url)

    def open(self) -> str:
        """Create the remote session, or return the locator already assigned."""

        if self._closed:
            raise SessionClosedError("Session has been closed and cannot be reused")
        if self._session_path is not None:
            return self._session_path
        response = self._request("POST", "sessions")
        self._raise_for_status(response, "Opening session")
        locator = response.text.strip()
        # Absolute locators are used as-is; relative ones resolve against the server URL.
        if locator.startswith(("http://", "https://")):
            locator = locator.rstrip("/")
        else:
            locator = locator.strip("/")
        if not locator:
            raise TransmissionFailure("Server did not return a session locator")
        self._session_path = locator
        logger.info("Opened session %s on %s", locator, self.remote_url)
        return locator

    def close(self) -> None:
        """Release the remote session; a no-op when nothing was opened."""

        if self._closed:
            return
        try:
            if self._session_path is not None:
                response = self._request("DELETE", self._session_path)
                self._raise_for_status(response, "Closing session")
                logger.info("Closed session %s on %s", self._session_path, self.remote_url)
        finally:
            self._closed = True
            self._session_path = None
            if self._owns_client:
                self._client.close()

    def _close_after_failure(self) -> None:
        try:
            self.close()
        except Exception:
            logger.warning("Failed to close session on %s", self.remote_url, exc_info=True)

    def push_table_page(self, table: str, envelope: ChunkEnvelope) -> bool:
        """Upload one page; ``False`` means the server saw a checksum mismatch."""

        response = self._request(
            "POST",
            self._resource("tables", quote(table, safe="")),
            content=envelope.payload,
            headers={
                "Content-Type": "application/octet-stream",
                CHECKSUM_HEADER: envelope.checksum,
            },
        )
        if response.status_code == HTTP_PRECONDITION_FAILED:
            return False
        self._raise_for_status(response, f"Sending page of table {table}")
        return True

    def fetch_table_page(self, table: str, chunksize: int, offset: int) -> ChunkEnvelope:
        response = self._request(
            "GET",
            self._resource("tables", quote(table, safe=""), str(chunksize)),
            params={"offset": offset},
        )
        self._raise_for_status(response, f"Fetching page of table {table}")
        return ChunkEnvelope(
            payload=response.content,
            checksum=response.headers.get(CHECKSUM_HEADER, ""),
        )

    def fetch_manifest(self) -> TableManifest:
        response = self._request("GET", self._resource("tables"))
        self._raise_for_status(response, "Fetching table list")
        try:
            return TableManifest(tables=response.json())
        except (ValueError, ValidationError) as exc:
            raise TransmissionFailure(f"Server returned an invalid table list: {exc}") from exc

    def fetch_schema(self) -> bytes:
        response = self._request("GET", self._resource("schema"))
        self._raise_for_status(response, "Fetching schema")
        return response.content

    def fetch_indexes(self) -> bytes:
        response = self._request("GET", self._resource("indexes"))
        self._raise_for_status(response, "Fetching indexes")
        return response.content

    def reset_sequences(self) -> None:
        response = self._request("POST", self._resource("reset_sequences"))
        self._raise_for_status(response, "Resetting remote sequences")


__all__ = ["ClientSession"]
