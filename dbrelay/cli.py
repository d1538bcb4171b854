"""Command line entry point for ``dbrelay send`` and ``dbrelay receive``."""
from __future__ import annotations

import argparse
import logging
from typing import Dict, Optional

import httpx

from .config import TransferConfig, load_config
from .control.orchestrator import TransferClient
from .errors import AuthenticationFailure, ProtocolVersionMismatch, RelayError
from .logging_utils import setup_logging

logger = logging.getLogger(__name__)

_COMMANDS = {
    "send": "Send the local database to a remote dbrelay server",
    "receive": "Receive a remote database into the local database",
}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dbrelay",
        description="Replicate a relational database to or from a remote dbrelay server",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML file with transfer settings",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level for the transfer",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write JSON logs to this rotating file",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    for name, description in _COMMANDS.items():
        command = commands.add_parser(name, help=description, description=description)
        command.add_argument(
            "database_url",
            nargs="?",
            help="SQLAlchemy URL of the local database (may come from --config)",
        )
        command.add_argument(
            "remote_url",
            nargs="?",
            help="URL of the remote dbrelay server (may come from --config)",
        )
        command.add_argument(
            "--chunksize",
            type=int,
            default=None,
            help="Rows per page to start each table with",
        )
        command.add_argument(
            "--timeout",
            type=float,
            default=None,
            help="Seconds to wait on each HTTP request",
        )
        command.add_argument(
            "--max-corrupt-retries",
            type=int,
            default=None,
            help="Give up after this many checksum failures on one page (default: never)",
        )
        command.add_argument(
            "--schema-tool",
            default=None,
            help="Command used to load schema and indexes and reset sequences",
        )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TransferConfig:
    overrides: Dict[str, object] = {
        "database_url": args.database_url,
        "remote_url": args.remote_url,
        "chunksize": args.chunksize,
        "timeout": args.timeout,
        "max_corrupt_retries": args.max_corrupt_retries,
        "schema_tool": args.schema_tool,
    }
    return load_config(args.config, **overrides)


def run(args: argparse.Namespace, *, client: Optional[httpx.Client] = None) -> Dict[str, int]:
    config = build_config(args)
    with TransferClient.start(config, client=client) as transfer:
        if args.command == "send":
            return transfer.send()
        return transfer.receive()


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging("dbrelay", level=getattr(logging, args.log_level), log_file=args.log_file)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    try:
        tables = run(args)
    except (ProtocolVersionMismatch, AuthenticationFailure) as exc:
        logger.error("%s", exc)
        raise SystemExit(1)
    except (RelayError, FileNotFoundError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        raise SystemExit(1)
    except KeyboardInterrupt:
        logger.info("Transfer interrupted")
        raise SystemExit(130)
    logger.info("%s finished: %d tables", args.command, len(tables))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
