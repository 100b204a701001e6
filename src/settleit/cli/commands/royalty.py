"""Royalty report commands."""

import click
from settleit.cli.error_handling import handle_domain_error, parse_amount_option
from settleit.domain.errors import DomainError
from settleit.domain.statuses import RoyaltyReportStatus
from settleit.utils.date_parser import parse_datetime
from settleit.utils.deadline import Deadline


def _parse_now(ctx, now: str | None):
    if now is None:
        return None
    try:
        return parse_datetime(now)
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)


@click.group()
def royalty_group():
    """Generate and manage royalty reports."""
    pass


@royalty_group.command("generate")
@click.option("--merchant", "merchant_ids", type=int, multiple=True, help="Only these merchants (repeatable)")
@click.option("--now", help="Run as of this UTC timestamp")
@click.option("--timeout", type=float, help="Abort after this many seconds")
@click.pass_context
def generate_reports(ctx, merchant_ids: tuple[int, ...], now: str | None, timeout: float | None):
    """Generate royalty reports for the last completed period.

    Examples:
        settleit royalty generate
        settleit royalty generate --merchant 3 --now "2024-03-04 16:00"
    """
    engine = ctx.obj["engine"]
    deadline = Deadline(timeout) if timeout else None

    try:
        result = engine.royalty.generate(
            now=_parse_now(ctx, now), merchant_ids=list(merchant_ids) or None, deadline=deadline
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    for merchant_id, report_id in sorted(result.succeeded.items()):
        report = engine.royalty.get_report(report_id)
        click.echo(f"Merchant {merchant_id}: report {report.id}, payout {report.payout_amount} {report.currency}")
    for merchant_id, error in sorted(result.errors.items()):
        click.echo(f"Merchant {merchant_id}: failed: {error}", err=True)
    if not result.ok:
        ctx.exit(1)


@royalty_group.command("send")
@click.argument("report_id", type=int)
@click.pass_context
def send_report(ctx, report_id: int):
    """Send a new report to the merchant for acceptance."""
    engine = ctx.obj["engine"]
    try:
        report = engine.royalty.send_for_acceptance(report_id, source="admin")
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Report {report.id} sent, acceptance due {report.accept_expire_at:%Y-%m-%d %H:%M}")


@royalty_group.command("accept-expired")
@click.option("--now", help="Run as of this UTC timestamp")
@click.pass_context
def accept_expired(ctx, now: str | None):
    """Accept pending reports whose acceptance window has passed."""
    engine = ctx.obj["engine"]
    accepted = engine.royalty.auto_accept(now=_parse_now(ctx, now))
    click.echo(f"Accepted {len(accepted)} report(s)")


@royalty_group.command("status")
@click.argument("report_id", type=int)
@click.argument("status", type=click.Choice([s.value for s in RoyaltyReportStatus]))
@click.option("--correction", help="Correction amount (required for dispute)")
@click.option("--reason", help="Correction reason (required for dispute)")
@click.pass_context
def change_status(ctx, report_id: int, status: str, correction: str | None, reason: str | None):
    """Change the status of a royalty report.

    Examples:
        settleit royalty status 12 accepted
        settleit royalty status 12 dispute --correction 15.00 --reason "Missing refund"
    """
    engine = ctx.obj["engine"]
    correction_amount = parse_amount_option(ctx, correction, "correction") if correction else None
    try:
        report = engine.royalty.change_status(
            report_id,
            RoyaltyReportStatus(status),
            correction_amount=correction_amount,
            correction_reason=reason,
            source="admin",
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Report {report.id} is now {report.status.value}")


@royalty_group.command("list")
@click.option("--merchant", "merchant_id", type=int, help="Filter by merchant ID")
@click.option(
    "--status",
    "statuses",
    multiple=True,
    type=click.Choice([s.value for s in RoyaltyReportStatus]),
    help="Filter by status (repeatable)",
)
@click.pass_context
def list_reports(ctx, merchant_id: int | None, statuses: tuple[str, ...]):
    """List royalty reports."""
    engine = ctx.obj["engine"]
    reports = engine.royalty.list_reports(merchant_id=merchant_id, statuses=statuses or None)
    if not reports:
        click.echo("No royalty reports found.")
        return

    for r in reports:
        click.echo(
            f"{r.id:5d} | merchant {r.merchant_id} | {r.period_from:%Y-%m-%d} - {r.period_to:%Y-%m-%d} | "
            f"{r.status.value:8s} | payout {r.payout_amount} {r.currency}"
        )


def register_commands(cli):
    """Register royalty commands with main CLI."""
    cli.add_command(royalty_group, name="royalty")
