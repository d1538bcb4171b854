"""Subprocess wrapper around the external schema tool."""
from __future__ import annotations

import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from ..common.formatting import mask_url
from ..config import DEFAULT_SCHEMA_TOOL
from ..errors import SchemaToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaToolResult:
    args: List[str]
    returncode: int
    output: str


class SchemaTool:
    """Apply schema, indexes and sequence resets to the local database.

    Payloads fetched from the server are handed to the tool through a
    temporary file, e.g. ``schema load <database-url> <file>``.
    """

    def __init__(self, database_url: str, command: Sequence[str] = (DEFAULT_SCHEMA_TOOL,)) -> None:
        if not command:
            raise ValueError("SchemaTool requires a command")
        self.database_url = database_url
        self.command = list(command)

    def load_schema(self, payload: bytes) -> SchemaToolResult:
        return self._run_with_payload("load", payload)

    def load_indexes(self, payload: bytes) -> SchemaToolResult:
        return self._run_with_payload("load_indexes", payload)

    def reset_sequences(self) -> SchemaToolResult:
        return self._run(["reset_db_sequences", self.database_url])

    def _run_with_payload(self, action: str, payload: bytes) -> SchemaToolResult:
        with tempfile.TemporaryDirectory(prefix="dbrelay-") as tmpdir:
            path = Path(tmpdir) / f"{action}.dump"
            path.write_bytes(payload)
            return self._run([action, self.database_url, str(path)])

    def _run(self, arguments: List[str]) -> SchemaToolResult:
        args = [*self.command, *arguments]
        shown = [mask_url(arg) if arg == self.database_url else arg for arg in args]
        logger.debug("Running %s", " ".join(shown))
        try:
            completed = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as exc:
            raise SchemaToolError(shown, 127, str(exc)) from exc
        output = completed.stdout.decode("utf-8", errors="replace")
        if output:
            logger.info("%s", output.rstrip("\n"))
        if completed.returncode != 0:
            raise SchemaToolError(shown, completed.returncode, output)
        return SchemaToolResult(args=shown, returncode=completed.returncode, output=output)


__all__ = ["SchemaTool", "SchemaToolResult"]
