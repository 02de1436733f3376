#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
import logging
import sys
from typing import Any

from firepath.api.dependencies import create_firestore_client
from firepath.errors import BatchCommitError, FirepathError
from firepath.settings import AppSettings, load_settings
from firepath.storage.firestore_documents import FirestoreDocumentRepository
from firepath.storage.firestore_query import QueryOptions


LOGGER = logging.getLogger(__name__)


def parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_options(args: argparse.Namespace) -> QueryOptions:
    where = [(field_path, op, parse_value(value)) for field_path, op, value in args.where or []]
    return QueryOptions.build(where=where, order_by=args.order_by or None, limit=args.limit)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete every document matching a query under a path.")
    parser.add_argument("path", help="Collection path, e.g. users or users/42/posts")
    parser.add_argument(
        "--where",
        nargs=3,
        action="append",
        metavar=("FIELD", "OP", "VALUE"),
        help="Filter (repeatable). VALUE is parsed as JSON when possible.",
    )
    parser.add_argument("--order-by", action="append", default=None, help="Order field (repeatable).")
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--batch-size", type=int, default=None, help="Writes per batch (<= FIRESTORE_BATCH_LIMIT).")
    parser.add_argument("--project-id", default=None, help="Overrides FIRESTORE_PROJECT_ID.")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, settings: AppSettings) -> int:
    if args.project_id:
        settings = replace(settings, firestore_project_id=args.project_id)

    try:
        client = create_firestore_client(settings)
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    repository = FirestoreDocumentRepository(
        client,
        batch_size=settings.batch_size,
        batch_limit=settings.batch_limit,
    )
    try:
        result = await repository.delete_many(args.path, build_options(args), batch_size=args.batch_size)
    except BatchCommitError as exc:
        LOGGER.error(
            "delete failed: chunk=%s/%s committed_chunks=%s committed_documents=%s",
            exc.chunk_index + 1,
            exc.total_chunks,
            exc.committed_chunks,
            exc.committed_count,
        )
        return 1
    except FirepathError as exc:
        LOGGER.error("delete rejected: %s", exc)
        return 2

    LOGGER.info("deleted: path=%s matched=%s chunks=%s", args.path, result.matched, list(result.chunk_sizes))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(message)s")
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
