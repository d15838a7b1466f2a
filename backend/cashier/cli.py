# Overview: Flask CLI command groups for bootstrap, inspection, and reconciliation.

# backend/cashier/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Cashier days:
# - python -m flask cashier init-day 2025-01-10 --primary u-1 --secondary u-2 --fund 200.00 --actor admin
#   Initialize a day with its four shifts.
# - python -m flask cashier status 2025-01-10
#   Show the day's shifts and whether it can be closed.
# - python -m flask cashier repair 2025-01-10 --actor admin
#   Recompute stored day totals from the shifts (logs an adjustment per corrected total).
# - python -m flask cashier month 2025 1
#   Print the monthly report.

import click
from flask.cli import with_appcontext

from .errors import CashierError
from .extensions import db
from .money import format_cents
from .services import daily_service, reporting_service, shift_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    db.session.remove()
    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('cashier')
def cashier_group():
    """Cashier day inspection and reconciliation."""


@cashier_group.command('init-day')
@click.argument('day')
@click.option('--primary', 'primary_user_id', required=True, help='Primary user of every shift')
@click.option('--secondary', 'secondary_user_ids', multiple=True, help='Secondary user (repeatable)')
@click.option('--fund', 'initial_fund', default=None, help='Initial fund per shift, e.g. 200.00')
@click.option('--actor', default='cli', show_default=True, help='User recorded as opened_by')
@with_appcontext
def init_day_cli(day, primary_user_id, secondary_user_ids, initial_fund, actor):
    """
    Initialize a cashier day.

    Example:
        flask cashier init-day 2025-01-10 --primary u-1 --fund 200.00
    """
    try:
        daily = daily_service.initialize_day(
            day,
            primary_user_id,
            list(secondary_user_ids),
            initial_fund,
            opened_by=actor,
        )
    except CashierError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Day {daily.date.isoformat()} initialized with {len(daily.shifts)} shifts")


@cashier_group.command('status')
@click.argument('day')
@with_appcontext
def status_cli(day):
    """Show the shifts of a day and the close probe."""
    try:
        daily = daily_service.get_daily(day)
        shifts = shift_service.list_shifts(day)
        probe = daily_service.can_close(day)
    except CashierError as e:
        raise click.ClickException(e.message)

    click.echo(f"Day {daily.date.isoformat()} [{daily.status}] grand total {format_cents(daily.grand_total_cents)}")
    click.echo("=" * 90)
    click.echo(f"{'ID':<6} {'Type':<10} {'Status':<12} {'Expected':>12} {'Counted':>12} {'Difference':>12} {'Total':>12}")
    click.echo("=" * 90)
    for shift in shifts:
        click.echo(
            f"{shift.id:<6} {shift.shift_type:<10} {shift.status:<12} "
            f"{format_cents(shift.cash_expected_cents):>12} {format_cents(shift.cash_counted_cents):>12} "
            f"{format_cents(shift.difference_cents):>12} {format_cents(shift.grand_total_cents):>12}"
        )

    if probe["can_close"]:
        click.echo("\nPASS Day can be closed")
    else:
        click.echo("\nWARN Day cannot be closed yet:")
        for error in probe["validation_errors"]:
            click.echo(f"  - {error}")


@cashier_group.command('repair')
@click.argument('day')
@click.option('--actor', default='cli', show_default=True, help='User recorded on the adjustment entries')
@with_appcontext
def repair_cli(day, actor):
    """Recompute stored day totals from the shifts."""
    try:
        result = daily_service.repair_totals(day, changed_by=actor)
    except CashierError as e:
        raise click.ClickException(e.message)

    if result["repaired_fields"]:
        click.echo(f"WARN Repaired: {', '.join(result['repaired_fields'])}")
    else:
        click.echo("PASS Totals already consistent")


@cashier_group.command('month')
@click.argument('year', type=int)
@click.argument('month', type=int)
@with_appcontext
def month_cli(year, month):
    """Print the monthly report."""
    try:
        report = reporting_service.monthly_report(year, month)
    except CashierError as e:
        raise click.ClickException(e.message)

    period = report["period"]
    click.echo(
        f"{period['start']} .. {period['end']}: "
        f"{period['days_closed']} closed, {period['days_open']} open, "
        f"{period['days_not_initialized']} not initialized"
    )
    for row in report["payment_methods_breakdown"]:
        click.echo(f"  {row['method_name']:<12} {row['total_amount']:>12} {row['percentage']:>7}%")
    click.echo(f"  {'grand_total':<12} {report['totals']['grand_total']:>12}")
    for error in report["validation_errors"]:
        click.echo(f"WARN {error}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(cashier_group)
