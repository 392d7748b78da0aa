"""Command-line entry point.

Usage::

    python -m grounded_chat ingest --file data.md
    python -m grounded_chat serve --port 8080
"""

from __future__ import annotations

import argparse
import logging
import sys

from grounded_chat.config import settings
from grounded_chat.errors import GroundedChatError
from grounded_chat.logging_utils import setup_logging

logger = logging.getLogger("grounded_chat.cli")


def _ingest(args: argparse.Namespace) -> int:
    from grounded_chat.runtime import build_runtime

    runtime = build_runtime(load_index=False)
    try:
        logger.info("Starting data ingestion from %s", args.file)
        report = runtime.ingestion_pipeline().ingest_file(args.file)
    except GroundedChatError as exc:
        logger.error("Data ingestion failed: %s", exc)
        return 1
    finally:
        runtime.close()

    logger.info("Data ingestion complete: %s", report)
    print(report.model_dump_json(indent=2))
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("grounded_chat.serving.app:app", host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grounded_chat", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="replace the chunk set from a Markdown table and exit")
    ingest.add_argument("--file", default=settings.data_file, help="table source (default: %(default)s)")
    ingest.set_defaults(func=_ingest)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.set_defaults(func=_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
