# app/cli/maintenance.py
"""
CLI commands for data maintenance.

Usage:
    python -m app.cli.maintenance run
    python -m app.cli.maintenance config
    python -m app.cli.maintenance set-config --job-retention-months 18 --batch-size 2000
    python -m app.cli.maintenance preview
    python -m app.cli.maintenance sweep-logs --days 14
    python -m app.cli.maintenance scheduler
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from app.database import SessionLocal

    return SessionLocal()


def _print_configuration(row):
    print(f"  Archival enabled: {row.is_archival_enabled}")
    print(f"  Job retention: {row.job_retention_months} months")
    print(f"  Job execution retention: {row.job_execution_retention_months} months")
    print(f"  Audit log retention: {row.audit_log_retention_days} days")
    print(f"  Archive retention: {row.archive_retention_years} years")
    print(f"  Log file retention: {row.log_retention_days} days")
    print(f"  Batch size: {row.archival_batch_size}")
    if row.notes:
        print(f"  Notes: {row.notes}")


def _print_result(result):
    print("Archived:")
    for kind, count in result.archived.items():
        print(f"  {kind}: {count}")
    print("Purged:")
    for kind, count in result.purged.items():
        print(f"  {kind}: {count}")
    print(f"Log files deleted: {result.log_files_deleted} ({result.bytes_freed / (1024 * 1024):.2f} MB freed)")

    if result.cancelled:
        print("\nCycle was cancelled before completion")
    if result.error_message:
        print(f"\nError: {result.error_message}")


def cmd_run(args):
    """Run one maintenance cycle now."""
    from app.database import SessionLocal
    from app.services.maintenance import MaintenanceInProgressError, build_orchestrator, run_maintenance_exclusive

    print("\nRunning maintenance cycle...\n")

    try:
        result = run_maintenance_exclusive(build_orchestrator(SessionLocal), triggered_by="cli")
    except MaintenanceInProgressError as e:
        print(f"Error: {e}")
        sys.exit(1)

    _print_result(result)

    if not result.success:
        sys.exit(1)


def cmd_config(args):
    """Show the retention configuration."""
    from app.services.maintenance import ensure_configuration

    db = get_db_session()
    try:
        row = ensure_configuration(db)
        print("\n=== Retention Configuration ===\n")
        _print_configuration(row)
        print()
    finally:
        db.close()


def cmd_set_config(args):
    """Update the retention configuration."""
    from app.services.maintenance import update_configuration

    enabled = None
    if args.enable:
        enabled = True
    elif args.disable:
        enabled = False

    db = get_db_session()
    try:
        try:
            row = update_configuration(
                db,
                is_archival_enabled=enabled,
                job_retention_months=args.job_retention_months,
                job_execution_retention_months=args.execution_retention_months,
                audit_log_retention_days=args.audit_log_retention_days,
                archive_retention_years=args.archive_retention_years,
                log_retention_days=args.log_retention_days,
                archival_batch_size=args.batch_size,
                notes=args.notes,
            )
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print("Updated retention configuration:")
        _print_configuration(row)
    finally:
        db.close()


def cmd_preview(args):
    """Show how many rows the next cycle would archive and purge."""
    from app.services.maintenance import get_maintenance_preview

    db = get_db_session()
    try:
        preview = get_maintenance_preview(db)

        print("\n=== Maintenance Preview ===\n")
        print(f"Archival enabled: {preview['archival_enabled']}")

        print("\nPending archive:")
        for kind, count in preview["pending_archive"].items():
            cutoff = preview["archive_cutoffs"][kind]
            print(f"  {kind}: {count} (created before {cutoff.isoformat()})")

        print(f"\nPending purge (archived before {preview['purge_cutoff'].isoformat()}):")
        for kind, count in preview["pending_purge"].items():
            print(f"  {kind}: {count}")

        print()
    finally:
        db.close()


def cmd_sweep_logs(args):
    """Delete stale log files only, without touching the database."""
    from app.config import get_settings
    from app.services.maintenance import LogSweeper, get_retention_configuration

    days = args.days
    if days is None:
        db = get_db_session()
        try:
            days = get_retention_configuration(db).log_retention_days
        finally:
            db.close()

    base_dir = args.base_dir or get_settings().LOG_BASE_DIR
    result = LogSweeper(base_dir=base_dir).sweep(days)

    print(f"Directories scanned: {result.directories_scanned}")
    print(f"Files deleted: {result.files_deleted}")
    print(f"Freed: {result.megabytes_freed:.2f} MB")

    if result.failures:
        print("\nFailures:")
        for failure in result.failures:
            print(f"  - {failure}")


def cmd_scheduler(args):
    """Run the daily scheduler in the foreground until interrupted."""
    from app.main import create_scheduler

    scheduler = create_scheduler()
    print(f"Maintenance scheduler running (daily at {scheduler.run_hour:02d}:00 UTC). Press Ctrl-C to stop.")

    try:
        scheduler.run()
    except KeyboardInterrupt:
        scheduler.cancel_event.set()
        print("\nScheduler stopped")


def main():
    from app.config import get_settings
    from app.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Data Maintenance CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a maintenance cycle now
  python -m app.cli.maintenance run

  # Preview what would be archived and purged
  python -m app.cli.maintenance preview

  # Keep jobs live for 18 months
  python -m app.cli.maintenance set-config --job-retention-months 18

  # Disable database archival (log sweep still runs)
  python -m app.cli.maintenance set-config --disable

  # Only clean up log files older than 14 days
  python -m app.cli.maintenance sweep-logs --days 14
        """,
    )
    parser.add_argument("--plain-logs", action="store_true", help="Human-readable logs instead of JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run command
    run_parser = subparsers.add_parser("run", help="Run one maintenance cycle")
    run_parser.set_defaults(func=cmd_run)

    # config command
    config_parser = subparsers.add_parser("config", help="Show retention configuration")
    config_parser.set_defaults(func=cmd_config)

    # set-config command
    set_parser = subparsers.add_parser("set-config", help="Update retention configuration")
    toggle = set_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Enable database archival")
    toggle.add_argument("--disable", action="store_true", help="Disable database archival")
    set_parser.add_argument("--job-retention-months", type=int, help="Months jobs stay live")
    set_parser.add_argument("--execution-retention-months", type=int, help="Months executions stay live")
    set_parser.add_argument("--audit-log-retention-days", type=int, help="Days audit logs stay live")
    set_parser.add_argument("--archive-retention-years", type=int, help="Years archive rows are kept")
    set_parser.add_argument("--log-retention-days", type=int, help="Days log files are kept")
    set_parser.add_argument("--batch-size", type=int, help="Rows per batch transaction")
    set_parser.add_argument("--notes", help="Free-text note stored with the configuration")
    set_parser.set_defaults(func=cmd_set_config)

    # preview command
    preview_parser = subparsers.add_parser("preview", help="Preview pending archive/purge counts")
    preview_parser.set_defaults(func=cmd_preview)

    # sweep-logs command
    sweep_parser = subparsers.add_parser("sweep-logs", help="Delete stale log files")
    sweep_parser.add_argument("--days", type=int, help="Retention in days (default: stored configuration)")
    sweep_parser.add_argument("--base-dir", help="Base directory whose logs/ folders are swept")
    sweep_parser.set_defaults(func=cmd_sweep_logs)

    # scheduler command
    scheduler_parser = subparsers.add_parser("scheduler", help="Run the daily scheduler in the foreground")
    scheduler_parser.set_defaults(func=cmd_scheduler)

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON and not args.plain_logs, level=settings.LOG_LEVEL)

    args.func(args)


if __name__ == "__main__":
    main()
