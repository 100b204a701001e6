"""VAT report commands."""

import click
from settleit.cli.error_handling import handle_domain_error
from settleit.domain.errors import DomainError
from settleit.domain.statuses import VAT_MANUAL_TO
from settleit.utils.date_parser import parse_datetime


def _echo_reports(reports):
    if not reports:
        click.echo("No VAT reports found.")
        return
    for r in reports:
        flag = " ~" if r.amounts_approximate else ""
        click.echo(
            f"{r.id:5d} | {r.country} | {r.date_from} - {r.date_to} | {r.status.value:11s} | "
            f"VAT {r.vat_amount} {r.currency}{flag} | pay until {r.pay_until_date}"
        )


@click.group()
def vat_group():
    """Generate and settle VAT reports."""
    pass


@vat_group.command("process")
@click.option("--as-of", help="Run as of this UTC timestamp (defaults to now)")
@click.pass_context
def process(ctx, as_of: str | None):
    """Run the full VAT job: turnovers, backfill, reports and statuses."""
    engine = ctx.obj["engine"]
    try:
        when = parse_datetime(as_of) if as_of else None
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)

    try:
        result = engine.vat.process(as_of=when)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Turnovers: {len(result.turnovers.succeeded)} calculated, {len(result.turnovers.errors)} failed")
    click.echo(f"Reports: {len(result.reports.succeeded)} generated, {len(result.reports.skipped)} skipped")
    click.echo(f"Orders: {result.refreshed_orders} refreshed")
    click.echo(f"Statuses: {len(result.statuses.succeeded)} changed")
    for step in (result.turnovers, result.backfill, result.reports, result.statuses):
        for key, error in step.errors.items():
            click.echo(f"{key}: failed: {error}", err=True)
    if not result.ok:
        ctx.exit(1)


@vat_group.command("advance")
@click.option("--now", help="Run as of this UTC timestamp (defaults to now)")
@click.pass_context
def advance(ctx, now: str | None):
    """Advance statuses of reports whose period has closed."""
    engine = ctx.obj["engine"]
    try:
        when = parse_datetime(now) if now else None
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)

    result = engine.vat.advance_statuses(now=when)
    for report_id, status in sorted(result.succeeded.items()):
        click.echo(f"Report {report_id}: {status}")
    if not result.succeeded:
        click.echo("No status changes.")


@vat_group.command("status")
@click.argument("report_id", type=int)
@click.argument("status", type=click.Choice(sorted(s.value for s in VAT_MANUAL_TO)))
@click.pass_context
def change_status(ctx, report_id: int, status: str):
    """Mark a payable VAT report as paid or canceled."""
    engine = ctx.obj["engine"]
    try:
        report = engine.vat.update_status(report_id, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"VAT report {report.id} is now {report.status.value}")


@vat_group.command("list")
@click.option("--country", help="Reports of one country (defaults to the dashboard)")
@click.pass_context
def list_reports(ctx, country: str | None):
    """List VAT reports needing attention, or all reports of a country."""
    engine = ctx.obj["engine"]
    try:
        reports = engine.vat.list_for_country(country.upper()) if country else engine.vat.dashboard()
    except DomainError as e:
        handle_domain_error(ctx, e)
    _echo_reports(reports)


def register_commands(cli):
    """Register VAT commands with main CLI."""
    cli.add_command(vat_group, name="vat")
