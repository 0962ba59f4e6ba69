"""
Admin CLI for managing upload batches and reviewing imported data.

Usage:
    python -m candidate_ingest.cli.admin_cli list-batches [--status <status>] [options]
    python -m candidate_ingest.cli.admin_cli show-batch --batch-id <id>
    python -m candidate_ingest.cli.admin_cli batch-errors --batch-id <id> [--json]
    python -m candidate_ingest.cli.admin_cli retry-batch --batch-id <id> --input <file> --actor <actor>
    python -m candidate_ingest.cli.admin_cli cleanup-batches [--older-than-days 30] --actor <actor>
    python -m candidate_ingest.cli.admin_cli prelist-stats
    python -m candidate_ingest.cli.admin_cli prelist-records [--state <state>] [options]
    python -m candidate_ingest.cli.admin_cli candidate-stats
    python -m candidate_ingest.cli.admin_cli audit-log [--actor <actor>] [--limit 50]
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from candidate_ingest.batch.pipeline import BatchPipeline, BatchProcessingError
from candidate_ingest.cli.batch_cli import add_db_arguments, create_pool
from candidate_ingest.observability.logger import get_logger, setup_logger
from candidate_ingest.utils.settings import IngestSettings
from candidate_ingest.utils.validation import (
    InputValidationError,
    validate_actor_id,
    validate_batch_id,
    validate_batch_status,
    validate_older_than_days,
    validate_pagination,
)
from candidate_ingest.warehouse.audit import AdminAuditLogger
from candidate_ingest.warehouse.batches import (
    BatchNotFoundError,
    InvalidBatchStateError,
    UploadBatchStore,
)
from candidate_ingest.warehouse.candidates import CandidateStore
from candidate_ingest.warehouse.prelist import PrelistStore

logger = get_logger(__name__)


def format_timestamp(ts: datetime | str | None) -> str:
    """Format timestamp for display."""
    if isinstance(ts, str):
        return ts
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "N/A"


def list_batches_command(args, pool, settings):
    """List upload batches, newest first."""
    page, limit = validate_pagination(args.page, args.limit)
    status = validate_batch_status(args.status) if args.status else None

    result = UploadBatchStore(pool).list_batches(
        status=status,
        uploaded_by=args.uploaded_by,
        record_type=args.record_type,
        since=args.since,
        page=page,
        limit=limit,
    )

    if not result["batches"]:
        print("\nNo upload batches found.")
        return

    print(f"\n{'=' * 110}")
    print(f"UPLOAD BATCHES (page {page}, {result['total']} total)")
    print(f"{'=' * 110}\n")
    print(
        f"{'Batch ID':<38} {'Type':<14} {'Status':<11} {'Total':>6} {'OK':>6} "
        f"{'Failed':>6}  {'Uploaded':<20} {'By'}"
    )
    print(f"{'-' * 110}")

    for batch in result["batches"]:
        print(
            f"{batch.id:<38} {batch.record_type:<14} {batch.status:<11} "
            f"{batch.total_records:>6} {batch.processed_records:>6} {batch.failed_records:>6}  "
            f"{format_timestamp(batch.uploaded_at):<20} {batch.uploaded_by}"
        )

    print()


def show_batch_command(args, pool, settings):
    batch = UploadBatchStore(pool).get_batch(validate_batch_id(args.batch_id))
    print(json.dumps(batch.model_dump(mode="json"), indent=2))


def batch_errors_command(args, pool, settings):
    """Show the rejected rows of a batch in row order."""
    batch_id = validate_batch_id(args.batch_id)
    store = UploadBatchStore(pool)
    store.get_batch(batch_id)
    errors = store.get_row_errors(batch_id)

    if args.json:
        print(json.dumps([e.model_dump(mode="json") for e in errors], indent=2))
        return

    if not errors:
        print(f"\nBatch {batch_id} has no row errors.")
        return

    print(f"\n{'Row':>5}  {'JAMB No':<16} {'Type':<11} {'Message'}")
    print(f"{'-' * 80}")
    for error in errors:
        print(
            f"{error.row_number:>5}  {error.jamb_reg_no or '-':<16} "
            f"{error.error_type:<11} {error.error_message}"
        )
    print(f"\n{len(errors)} row error(s)\n")


def retry_batch_command(args, pool, settings):
    """Re-run a completed or failed batch with the original file."""
    input_path = Path(args.input)
    if not input_path.is_file():
        raise InputValidationError(f"Input file not found: {args.input}")

    pipeline = BatchPipeline.from_settings(
        settings,
        pool,
        duplicate_policy=args.policy or settings.duplicate_policy,
    )
    summary = pipeline.retry_batch(
        args.batch_id,
        input_path.read_bytes(),
        uploaded_by=args.actor,
        content_type=args.content_type,
    )
    print(json.dumps(summary.to_response(), indent=2, default=str))


def cleanup_batches_command(args, pool, settings):
    """Delete failed batches older than N days."""
    days = validate_older_than_days(args.older_than_days)
    actor = validate_actor_id(args.actor, "actor")

    deleted = UploadBatchStore(pool).cleanup_failed_batches(older_than_days=days)
    AdminAuditLogger(pool).log_action(
        actor,
        "cleanup_upload_batches",
        "upload_batches",
        details={"olderThanDays": days, "deleted": deleted},
    )
    print(f"\nDeleted {deleted} failed batch(es) older than {days} day(s).")


def prelist_stats_command(args, pool, settings):
    """Print prelist totals, per-state and per-program counts and the score distribution."""
    stats = PrelistStore(pool).get_statistics()

    if args.json:
        print(json.dumps(stats, indent=2))
        return

    print(f"\n{'=' * 60}")
    print("PRELIST STATISTICS")
    print(f"{'=' * 60}\n")
    print(f"Total records: {stats['total']}")
    average = stats["average_score"]
    print(f"Average JAMB score: {average if average is not None else 'N/A'}\n")

    print("Score distribution:")
    for bucket, count in stats["score_distribution"].items():
        print(f"  {bucket:<10} {count:>6}")

    print("\nBy state:")
    for row in stats["by_state"]:
        print(f"  {row['state']:<30} {row['count']:>6}")

    print("\nBy first program choice:")
    for row in stats["by_program"]:
        print(f"  {row['program']:<30} {row['count']:>6}")
    print()


def prelist_records_command(args, pool, settings):
    page, limit = validate_pagination(args.page, args.limit)
    result = PrelistStore(pool).list_records(
        state=args.state,
        program=args.program,
        min_score=args.min_score,
        max_score=args.max_score,
        search=args.search,
        page=page,
        limit=limit,
    )
    print(json.dumps(result, indent=2, default=str))


def candidate_stats_command(args, pool, settings):
    stats = CandidateStore(pool).get_registration_stats()
    print(json.dumps(stats, indent=2))


def audit_log_command(args, pool, settings):
    entries = AdminAuditLogger(pool).query_actions(
        admin_user_id=args.actor,
        action=args.action,
        limit=args.limit,
    )

    if not entries:
        print("\nNo audit entries found.")
        return

    print(f"\n{'Timestamp':<20} {'Actor':<20} {'Action':<24} {'Resource'}")
    print(f"{'-' * 90}")
    for entry in entries:
        resource = entry.resource
        if entry.resource_id:
            resource = f"{resource}/{entry.resource_id}"
        print(
            f"{format_timestamp(entry.created_at):<20} {entry.admin_user_id:<20} "
            f"{entry.action:<24} {resource}"
        )
    print()


COMMANDS = {
    "list-batches": list_batches_command,
    "show-batch": show_batch_command,
    "batch-errors": batch_errors_command,
    "retry-batch": retry_batch_command,
    "cleanup-batches": cleanup_batches_command,
    "prelist-stats": prelist_stats_command,
    "prelist-records": prelist_records_command,
    "candidate-stats": candidate_stats_command,
    "audit-log": audit_log_command,
}


def build_parser(settings: IngestSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Admin CLI for candidate uploads",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    add_db_arguments(parser, settings)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list-batches command
    list_parser = subparsers.add_parser("list-batches", help="List upload batches")
    list_parser.add_argument(
        "--status",
        choices=["uploading", "processing", "completed", "failed"],
        help="Filter by status"
    )
    list_parser.add_argument("--uploaded-by", help="Filter by uploader")
    list_parser.add_argument(
        "--record-type",
        choices=["candidate_bio", "prelist_score"],
        help="Filter by record type"
    )
    list_parser.add_argument(
        "--since",
        type=datetime.fromisoformat,
        help="Only batches uploaded at or after this ISO timestamp"
    )
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument("--limit", type=int, default=20, help="Page size (default: 20)")

    # show-batch command
    show_parser = subparsers.add_parser("show-batch", help="Show one upload batch")
    show_parser.add_argument("--batch-id", required=True, help="Batch ID")

    # batch-errors command
    errors_parser = subparsers.add_parser("batch-errors", help="Show rejected rows of a batch")
    errors_parser.add_argument("--batch-id", required=True, help="Batch ID")
    errors_parser.add_argument("--json", action="store_true", help="Output JSON")

    # retry-batch command
    retry_parser = subparsers.add_parser(
        "retry-batch",
        help="Re-run a completed or failed batch with its original file"
    )
    retry_parser.add_argument("--batch-id", required=True, help="Batch ID")
    retry_parser.add_argument("--input", required=True, help="Path to the original file")
    retry_parser.add_argument("--actor", required=True, help="Administrator performing the retry")
    retry_parser.add_argument("--policy", choices=["reject", "update"], help="Duplicate policy")
    retry_parser.add_argument("--content-type", help="MIME type of the file")

    # cleanup-batches command
    cleanup_parser = subparsers.add_parser(
        "cleanup-batches",
        help="Delete old failed batches and their row errors"
    )
    cleanup_parser.add_argument(
        "--older-than-days",
        type=int,
        default=30,
        help="Age threshold in days (default: 30)"
    )
    cleanup_parser.add_argument("--actor", required=True, help="Administrator performing the cleanup")

    # prelist-stats command
    prelist_stats_parser = subparsers.add_parser("prelist-stats", help="Prelist statistics")
    prelist_stats_parser.add_argument("--json", action="store_true", help="Output JSON")

    # prelist-records command
    records_parser = subparsers.add_parser("prelist-records", help="Search prelist records")
    records_parser.add_argument("--state", help="State of origin")
    records_parser.add_argument("--program", help="Program in any of the three choices")
    records_parser.add_argument("--min-score", type=int, help="Minimum JAMB score")
    records_parser.add_argument("--max-score", type=int, help="Maximum JAMB score")
    records_parser.add_argument("--search", help="JAMB number or name substring")
    records_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    records_parser.add_argument("--limit", type=int, default=50, help="Page size (default: 50)")

    # candidate-stats command
    subparsers.add_parser("candidate-stats", help="Candidate registration statistics")

    # audit-log command
    audit_parser = subparsers.add_parser("audit-log", help="Show admin audit entries")
    audit_parser.add_argument("--actor", help="Filter by administrator")
    audit_parser.add_argument("--action", help="Filter by action name")
    audit_parser.add_argument("--limit", type=int, default=50, help="Maximum entries (default: 50)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for admin CLI."""
    settings = IngestSettings.from_env()
    setup_logger(level=settings.log_level, format_type=settings.log_format)

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    pool = create_pool(args, settings)

    try:
        pool.open()
        COMMANDS[args.command](args, pool, settings)

    except (
        BatchNotFoundError,
        BatchProcessingError,
        InputValidationError,
        InvalidBatchStateError,
    ) as e:
        print(f"\nError: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)

    finally:
        pool.close()


if __name__ == "__main__":
    main()
