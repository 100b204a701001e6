"""Annual turnover commands."""

import click
from settleit.cli.error_handling import handle_domain_error
from settleit.domain.entities import WORLD
from settleit.domain.errors import DomainError
from settleit.utils.date_parser import parse_datetime


@click.group()
def turnover_group():
    """Calculate annual turnovers."""
    pass


@turnover_group.command("calc")
@click.option("--as-of", help="Calculate as of this UTC timestamp (defaults to now)")
@click.pass_context
def calc_turnovers(ctx, as_of: str | None):
    """Recalculate turnovers of every operating company."""
    engine = ctx.obj["engine"]
    try:
        when = parse_datetime(as_of) if as_of else None
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)

    try:
        result = engine.turnover.calc_all(as_of=when)
    except DomainError as e:
        handle_domain_error(ctx, e)

    for (company_id, country), amount in sorted(result.succeeded.items(), key=str):
        click.echo(f"Company {company_id} | {country or 'world':5s} | {amount}")
    for (company_id, country), code in sorted(result.skipped.items(), key=str):
        click.echo(f"Company {company_id} | {country:5s} | skipped ({code})")
    for (company_id, country), error in sorted(result.errors.items(), key=str):
        click.echo(f"Company {company_id} | {country:5s} | failed: {error}", err=True)
    if not result.ok:
        ctx.exit(1)


@turnover_group.command("show")
@click.option("--company", "operating_company_id", type=int, help="Operating company ID")
@click.option("--country", default=WORLD, help="Country code (defaults to the worldwide turnover)")
@click.option("--year", type=int, help="Year (defaults to the current year)")
@click.pass_context
def show_turnover(ctx, operating_company_id: int | None, country: str, year: int | None):
    """Show a stored annual turnover."""
    engine = ctx.obj["engine"]
    try:
        turnover = engine.turnover.get(operating_company_id, country.upper(), year)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"{turnover.year} {turnover.country or 'world'} turnover: {turnover.amount} {turnover.currency} "
        f"(updated {turnover.updated_at:%Y-%m-%d %H:%M})"
    )


def register_commands(cli):
    """Register turnover commands with main CLI."""
    cli.add_command(turnover_group, name="turnover")
