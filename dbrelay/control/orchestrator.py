"""Top level ``send`` and ``receive`` commands."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import httpx

from ..client.session import ClientSession
from ..common.chunksize import ChunksizeAdvisor
from ..common.formatting import mask_url
from ..config import TransferConfig, load_config
from ..data.base import LocalStore
from ..data.sql import SQLStore
from .progress import LogProgress, ProgressReporter
from .receiver import TableReceiver
from .schema_tool import SchemaTool
from .sender import TableSender

logger = logging.getLogger(__name__)


class TransferClient:
    """Sequence handshake, data transfer and schema steps for one run."""

    def __init__(
        self,
        config: TransferConfig,
        session: ClientSession,
        store: LocalStore,
        schema_tool: SchemaTool,
        *,
        advisor: Optional[ChunksizeAdvisor] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.store = store
        self.schema_tool = schema_tool
        self.advisor = advisor or ChunksizeAdvisor.from_config(config)
        self.progress = progress or LogProgress()
        self.database_url = mask_url(config.database_url)
        self.remote_url = mask_url(config.remote_url)
        self.sender = TableSender(
            session,
            store,
            self.advisor,
            self.progress,
            default_chunksize=config.chunksize,
            max_corrupt_retries=config.max_corrupt_retries,
        )
        self.receiver = TableReceiver(
            session,
            store,
            self.advisor,
            self.progress,
            default_chunksize=config.chunksize,
            max_corrupt_retries=config.max_corrupt_retries,
        )

    @classmethod
    @contextmanager
    def start(
        cls,
        config: TransferConfig,
        *,
        client: Optional[httpx.Client] = None,
        **kwargs: Any,
    ) -> Iterator["TransferClient"]:
        """Build the collaborators for *config* and release them on exit."""

        store = SQLStore(config.database_url)
        try:
            with ClientSession.start(
                config.remote_url,
                timeout=config.timeout,
                auth=config.auth,
                client=client,
            ) as session:
                schema_tool = SchemaTool(config.database_url, config.schema_command)
                yield cls(config, session, store, schema_tool, **kwargs)
        finally:
            store.close()

    @classmethod
    @contextmanager
    def quickstart(cls, path: str | Path, **overrides: Any) -> Iterator["TransferClient"]:
        """Like :meth:`start`, reading the settings from a YAML file."""

        with cls.start(load_config(path, **overrides)) as transfer:
            yield transfer

    def send(self) -> Dict[str, int]:
        self.session.verify()
        self.session.open()
        sent = self.send_data()
        self.send_reset_sequences()
        return sent

    def send_data(self) -> Dict[str, int]:
        logger.info(
            "Sending data from local database %s to remote server at %s",
            self.database_url,
            self.remote_url,
        )
        return self.sender.send_all()

    def send_reset_sequences(self) -> None:
        logger.info("Resetting db sequences in remote server at %s", self.remote_url)
        self.session.reset_sequences()

    def receive(self) -> Dict[str, int]:
        self.session.verify()
        self.session.open()
        self.receive_schema()
        received = self.receive_data()
        self.receive_indexes()
        self.reset_sequences()
        return received

    def receive_schema(self) -> None:
        logger.info(
            "Receiving schema from remote server %s into local database %s",
            self.remote_url,
            self.database_url,
        )
        self.schema_tool.load_schema(self.session.fetch_schema())

    def receive_data(self) -> Dict[str, int]:
        logger.info(
            "Receiving data from remote server %s into local database %s",
            self.remote_url,
            self.database_url,
        )
        return self.receiver.receive_all()

    def receive_indexes(self) -> None:
        logger.info(
            "Receiving schema indexes from remote server %s into local database %s",
            self.remote_url,
            self.database_url,
        )
        self.schema_tool.load_indexes(self.session.fetch_indexes())

    def reset_sequences(self) -> None:
        logger.info("Resetting db sequences in %s", self.database_url)
        self.schema_tool.reset_sequences()


__all__ = ["TransferClient"]
