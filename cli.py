import argparse
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from core.logging_setup import setup_console_logging
from exam_api.config import LOG_LEVEL

setup_console_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Exam session service tools")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    commands.add_parser("init-db", help="Create database tables")

    importer = commands.add_parser("import", help="Import a test from a JSON file")
    importer.add_argument("file", type=Path, help="Path to test JSON file")
    return parser.parse_args(argv)


def import_file(path: Path) -> str:
    """Import a test JSON file and return the new test id."""
    from exam_api.database import SessionLocal, init_db
    from exam_api.models import TestImport
    from exam_api.services.import_service import import_test

    payload = TestImport.model_validate(json.loads(path.read_text(encoding="utf-8")))
    init_db()
    db = SessionLocal()
    try:
        test = import_test(db, payload)
        return test.id
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "serve":
        import uvicorn

        uvicorn.run("exam_api.app:app", host=args.host, port=args.port)
        return 0
    if args.command == "init-db":
        from exam_api.database import init_db

        init_db()
        print("Database initialized")
        return 0

    from exam_api.services.import_service import ContentImportError

    try:
        test_id = import_file(args.file)
    except (OSError, json.JSONDecodeError, ValidationError, ContentImportError) as exc:
        logger.error("Import of %s failed: %s", args.file, exc)
        return 1
    print(f"Imported test {test_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
