# Overview: Flask CLI command groups for bootstrap, maintenance runs, and the background scheduler.

# backend/migdalor/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Maintenance (one-off runs of the daily tasks):
# - python -m flask maintenance materialize-events
#   Top up instances of indefinitely recurring events.
# - python -m flask maintenance attendance-rollover [--reports-dir PATH]
#   Archive yesterday's attendance report and provision today's rows.
# - python -m flask maintenance cleanup-listings
#   Delete listings older than 14 days with their pictures and files.
# - python -m flask maintenance cleanup-notices
#   Delete notices older than 7 days with their pictures and files.
#
# Scheduler:
# - python -m flask scheduler next
#   Print the next fire time of every daily task.
# - python -m flask scheduler run
#   Run all daily tasks in the foreground until interrupted.

import signal
import threading

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import attendance_service, event_instance_service, maintenance_service
from .tasks import get_scheduler


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables are in place.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('materialize-events')
@with_appcontext
def materialize_events_cli():
    """Top up future instances of every indefinitely recurring event."""
    summary = event_instance_service.materialize_indefinite_events()
    click.echo(
        f"Processed {summary.processed} events: {summary.created} instances created, "
        f"{summary.failed} failed."
    )


@maintenance_group.command('attendance-rollover')
@click.option('--reports-dir', default=None, help='Override REPORTS_DIR for this run')
@with_appcontext
def attendance_rollover_cli(reports_dir):
    """Archive yesterday's attendance and provision today's rows."""
    summary = attendance_service.roll_over(reports_dir=reports_dir)
    if summary.report_path:
        click.echo(f"Archived {summary.archived} records for {summary.archive_date} to {summary.report_path}")
    else:
        click.echo(f"No report written for {summary.archive_date}")
    click.echo(f"Provisioned {summary.provisioned} records for {summary.provision_date}")


def _echo_sweep(summary):
    if summary.skipped:
        click.echo(f"Skipped {summary.policy} cleanup: uploads directory is missing.")
        return
    click.echo(
        f"Deleted {summary.deleted} of {summary.selected} {summary.policy} created before "
        f"{summary.cutoff:%Y-%m-%d %H:%M:%S} ({summary.failed} failed, "
        f"{summary.missing_files} files missing)."
    )


@maintenance_group.command('cleanup-listings')
@click.option('--uploads-dir', default=None, help='Override UPLOADS_DIR for this run')
@with_appcontext
def cleanup_listings_cli(uploads_dir):
    """
    Cleanup old marketplace listings.

    Retention: 14 days.
    """
    _echo_sweep(maintenance_service.cleanup_listings(uploads_dir=uploads_dir))


@maintenance_group.command('cleanup-notices')
@click.option('--uploads-dir', default=None, help='Override UPLOADS_DIR for this run')
@with_appcontext
def cleanup_notices_cli(uploads_dir):
    """
    Cleanup old notices.

    Retention: 7 days.
    """
    _echo_sweep(maintenance_service.cleanup_notices(uploads_dir=uploads_dir))


@click.group('scheduler')
def scheduler_group():
    """Background daily task commands."""


@scheduler_group.command('next')
@with_appcontext
def scheduler_next():
    """Show when each daily task fires next."""
    scheduler = get_scheduler(current_app._get_current_object())
    for name, when in sorted(scheduler.next_fire_times().items(), key=lambda item: item[1]):
        click.echo(f"{name:<20} {when:%Y-%m-%d %H:%M}")


@scheduler_group.command('run')
@with_appcontext
def scheduler_run():
    """Run the daily tasks in the foreground until SIGINT/SIGTERM."""
    app = current_app._get_current_object()
    scheduler = get_scheduler(app)
    stopped = threading.Event()

    def _stop(signum, frame):
        stopped.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    scheduler.start()
    for name, when in sorted(scheduler.next_fire_times().items(), key=lambda item: item[1]):
        click.echo(f"{name:<20} next run {when:%Y-%m-%d %H:%M}")

    while not stopped.wait(1.0):
        pass

    click.echo("Stopping scheduler...")
    scheduler.shutdown()
    click.echo("Scheduler stopped.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(maintenance_group)
    app.cli.add_command(scheduler_group)
