"""Command line entry point.

    python -m bulk_import.cli import listing data/listings.csv --resume --continue-on-error
    python -m bulk_import.cli validate category data/categories.json
    python -m bulk_import.cli backup
    python -m bulk_import.cli prune listing --max-age 1w
"""

import argparse
import asyncio
import sys

import structlog

from bulk_import.config import settings
from bulk_import.database import close_database, init_database
from bulk_import.dependencies import get_backup_service, get_import_service
from bulk_import.documents.config import StoreBackend
from bulk_import.documents.factory import close_document_store, init_document_store
from bulk_import.exceptions import AppError, ImportAbortedError
from bulk_import.imports.models import ImportType
from bulk_import.imports.schemas import ImportOptions, ImportResult, ValidationReport
from bulk_import.logging_config import setup_logging

logger = structlog.get_logger()

TYPES = [t.value for t in ImportType]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulk-import",
        description="Bulk import categories and listings into the document store",
    )
    parser.add_argument("--log-level", default=None, help="Override BI_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import data into the document store")
    import_parser.add_argument("type", choices=TYPES)
    import_parser.add_argument("input", help="CSV or JSON file")
    import_parser.add_argument("-b", "--backup", action="store_true", help="Create backup before import")
    import_parser.add_argument("-d", "--dry-run", action="store_true", help="Validate without importing")
    import_parser.add_argument("-r", "--resume", action="store_true", help="Resume from last checkpoint")
    import_parser.add_argument(
        "-c", "--continue-on-error", action="store_true", help="Continue processing on batch failure"
    )

    validate_parser = subparsers.add_parser("validate", help="Validate input data without importing")
    validate_parser.add_argument("type", choices=TYPES)
    validate_parser.add_argument("input", help="CSV or JSON file")

    subparsers.add_parser("backup", help="Create a backup of the current dataset")

    prune_parser = subparsers.add_parser("prune", help="Delete old checkpoints")
    prune_parser.add_argument("type", choices=TYPES)
    prune_parser.add_argument("--max-age", default=settings.checkpoint_retention)

    return parser


def print_import_summary(result: ImportResult) -> None:
    processed = result.success + result.failed
    rate = (result.success / processed * 100) if processed else 0.0
    print("\nImport Summary:")
    print(f"  Total records:   {result.total}")
    if result.resumed_from:
        print(f"  Resumed from:    {result.resumed_from}")
    print(f"  Successful:      {result.success}")
    print(f"  Failed:          {result.failed}")
    print(f"  Success rate:    {rate:.1f}%")
    print(f"  Checkpoints:     {len(result.checkpoints)}")
    if result.errors:
        print("\nErrors encountered:")
        for entry in result.errors:
            print(f"  batch {entry.batch}: {entry.error}")


def print_validation_report(report: ValidationReport) -> None:
    print("\nValidation Results:")
    print(f"  Total records:   {report.total}")
    print(f"  Valid records:   {report.valid}")
    print(f"  Invalid records: {report.invalid}")
    if report.errors:
        print("\nValidation Errors:")
        for error in report.errors:
            field = f" [{error.field}]" if error.field else ""
            print(f"  record {error.index + 1}{field}: {error.error}")


async def run_command(args: argparse.Namespace) -> int:
    if settings.store_backend == StoreBackend.SQLITE:
        await init_database()
    await init_document_store()

    try:
        if args.command == "import":
            service = get_import_service()
            if args.dry_run:
                report = await service.validate_path(args.input, args.type)
                print_validation_report(report)
                return 1 if report.invalid else 0
            options = ImportOptions(
                resume=args.resume,
                continue_on_error=args.continue_on_error,
                backup=args.backup,
            )
            result = await service.import_path(args.input, args.type, options)
            print_import_summary(result)
            return 0

        if args.command == "validate":
            report = await get_import_service().validate_path(args.input, args.type)
            print_validation_report(report)
            return 1 if report.invalid else 0

        if args.command == "backup":
            backup = await get_backup_service().backup()
            print(f"Backup written to {backup.filename} ({backup.document_count} documents)")
            return 0

        if args.command == "prune":
            pruned = await get_import_service().prune_checkpoints(args.type, args.max_age)
            print(f"Removed {len(pruned.removed)} checkpoint(s)")
            return 0

        return 2
    finally:
        await close_document_store()
        await close_database()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        return asyncio.run(run_command(args))
    except ImportAbortedError as exc:
        print_import_summary(exc.result)
        print(f"\nError: {exc.message}", file=sys.stderr)
        print("Re-run with --resume to continue from the last checkpoint.", file=sys.stderr)
        return 1
    except AppError as exc:
        logger.error("application_error", error=exc.message, code=exc.code)
        print(f"\nError: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
