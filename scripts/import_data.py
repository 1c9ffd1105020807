"""Load or wipe a collection in the SQL store.

    DATABASE_URL=sqlite:///practice.db python scripts/import_data.py --import data/books.json --collection books
    python scripts/import_data.py --delete --collection books
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from practice_api.domain.records import COLLECTIONS
from practice_api.infra.db.models import MODELS
from practice_api.infra.db.session import get_session_factory
from practice_api.infra.errors import StoreError
from practice_api.infra.repositories.sql_document_repository import SqlDocumentRepository
from practice_api.logging import configure_logging

logger = logging.getLogger("practice_api.import")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import or delete documents of one collection.")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--import", dest="import_path", type=Path, help="JSON file holding a list of documents")
    action.add_argument("--delete", action="store_true", help="remove every document of the collection")
    parser.add_argument(
        "--collection",
        choices=[collection.name for collection in COLLECTIONS],
        default="books",
    )
    return parser


def main(argv: list[str] | None = None, session_factory: sessionmaker[Session] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    collection = next(item for item in COLLECTIONS if item.name == args.collection)
    factory = session_factory or get_session_factory()

    with factory() as db:
        repository = SqlDocumentRepository(db, MODELS[collection.name], collection)
        if args.delete:
            removed = repository.delete_all()
            logger.info("Deleted %d %s", removed, collection.name)
            return 0

        try:
            documents = json.loads(args.import_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Cannot read %s: %s", args.import_path, exc)
            return 1
        if not isinstance(documents, list):
            logger.error("%s must contain a JSON list", args.import_path)
            return 1
        try:
            created = repository.create_many(documents)
        except StoreError as exc:
            logger.error("Nothing imported from %s: %s", args.import_path, exc)
            return 1
        logger.info("Imported %d %s from %s", len(created), collection.name, args.import_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
