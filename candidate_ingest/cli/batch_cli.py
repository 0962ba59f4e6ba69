"""
Command-line interface for candidate uploads.

Usage:
    python -m candidate_ingest.cli.batch_cli upload --input <file> --uploaded-by <actor> [options]
"""

import argparse
import json
import sys
from pathlib import Path

import psycopg

from candidate_ingest.batch.pipeline import BatchPipeline, BatchProcessingError
from candidate_ingest.observability.logger import get_logger, setup_logger
from candidate_ingest.utils.settings import IngestSettings
from candidate_ingest.utils.validation import InputValidationError
from candidate_ingest.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


def add_db_arguments(parser: argparse.ArgumentParser, settings: IngestSettings) -> None:
    """Database connection options, defaulting to the environment settings."""
    parser.add_argument(
        "--db-host",
        default=settings.db_host,
        help=f"Database host (default: {settings.db_host})"
    )
    parser.add_argument(
        "--db-port",
        type=int,
        default=settings.db_port,
        help=f"Database port (default: {settings.db_port})"
    )
    parser.add_argument(
        "--db-name",
        default=settings.db_name,
        help=f"Database name (default: {settings.db_name})"
    )
    parser.add_argument(
        "--db-user",
        default=settings.db_user,
        help=f"Database user (default: {settings.db_user})"
    )
    parser.add_argument(
        "--db-password",
        default=settings.db_password,
        help="Database password (default: DB_PASSWORD)"
    )


def create_pool(args, settings: IngestSettings) -> DatabaseConnectionPool:
    """Connection pool from the environment settings, with command-line overrides."""
    return DatabaseConnectionPool.from_settings(
        settings,
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )


def upload_command(args, settings: IngestSettings) -> int:
    """
    Execute an upload.

    Prints the JSON batch summary on stdout.

    Returns:
        Process exit code
    """
    input_path = Path(args.input)
    if not input_path.is_file():
        logger.error(f"Input file not found: {args.input}")
        return 1

    file_data = input_path.read_bytes()
    pool = create_pool(args, settings)

    try:
        pool.open()

        pipeline = BatchPipeline.from_settings(
            settings,
            pool,
            duplicate_policy=args.policy or settings.duplicate_policy,
            rules_path=args.rules or settings.rules_path,
        )

        summary = pipeline.process_upload(
            file_data,
            filename=input_path.name,
            uploaded_by=args.uploaded_by,
            record_type=args.record_type,
            content_type=args.content_type,
        )

        print(json.dumps(summary.to_response(), indent=2, default=str))
        return 0

    except (BatchProcessingError, InputValidationError) as e:
        logger.error(f"Upload failed: {e}")
        print(json.dumps({"error": str(e), "batchId": getattr(e, "batch_id", None)}, indent=2))
        return 1

    except psycopg.OperationalError as e:
        logger.error(f"Database unavailable: {e}")
        print(json.dumps({"error": f"Database unavailable: {e}", "batchId": None}, indent=2))
        return 1

    finally:
        pool.close()


def build_parser(settings: IngestSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Candidate and prelist upload pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload candidate biodata
  python -m candidate_ingest.cli.batch_cli upload --input candidates.xlsx --uploaded-by admin-1

  # Upload the JAMB prelist, updating records that already exist
  python -m candidate_ingest.cli.batch_cli upload --input prelist.csv --uploaded-by admin-1 \\
      --record-type prelist_score --policy update
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    upload_parser = subparsers.add_parser("upload", help="Upload a CSV or Excel file")
    upload_parser.add_argument(
        "--input",
        required=True,
        help="Path to the CSV or .xlsx file"
    )
    upload_parser.add_argument(
        "--uploaded-by",
        required=True,
        help="Identifier of the administrator performing the upload"
    )
    upload_parser.add_argument(
        "--record-type",
        default="candidate_bio",
        choices=["candidate_bio", "prelist_score"],
        help="What the file contains (default: candidate_bio)"
    )
    upload_parser.add_argument(
        "--policy",
        choices=["reject", "update"],
        help=f"Existing JAMB numbers: reject or update (default: {settings.duplicate_policy})"
    )
    upload_parser.add_argument(
        "--content-type",
        help="MIME type, when the file extension is not conclusive"
    )
    upload_parser.add_argument(
        "--rules",
        help="Path to a replacement rules YAML file"
    )
    add_db_arguments(upload_parser, settings)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    settings = IngestSettings.from_env()
    setup_logger(level=settings.log_level, format_type=settings.log_format)

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "upload":
        sys.exit(upload_command(args, settings))


if __name__ == "__main__":
    main()
