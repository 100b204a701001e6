"""Exchange and tax rate commands."""

import click
from settleit.cli.error_handling import handle_domain_error, parse_amount_option
from settleit.domain.errors import DomainError
from settleit.domain.ledger import normalize_currency
from settleit.domain.statuses import RateType
from settleit.utils.date_parser import parse_datetime, utcnow


@click.group()
def rate_group():
    """Manage exchange and tax rates."""
    pass


@rate_group.command("exchange")
@click.argument("from_currency", metavar="FROM")
@click.argument("to_currency", metavar="TO")
@click.argument("rate")
@click.option(
    "--type",
    "rate_type",
    type=click.Choice([t.value for t in RateType]),
    default=RateType.COMMON.value,
    show_default=True,
    help="Rate family",
)
@click.option("--source", default="", help="Rate source (central bank code)")
@click.option("--effective", help="Effective from (defaults to now)")
@click.pass_context
def add_exchange_rate(ctx, from_currency: str, to_currency: str, rate: str, rate_type: str, source: str, effective: str | None):
    """Record an exchange rate: 1 FROM = RATE TO.

    Examples:
        settleit rate exchange USD EUR 0.92
        settleit rate exchange EUR RUB 98.5 --type centralbanks --source RUCBRF --effective 2024-03-31
    """
    db = ctx.obj["db"]
    value = parse_amount_option(ctx, rate, "rate")

    try:
        effective_at = parse_datetime(effective) if effective else utcnow()
    except ValueError as e:
        click.echo(f"Error: Invalid effective date: {e}", err=True)
        ctx.exit(1)

    try:
        rate_id = db.add_exchange_rate(
            normalize_currency(from_currency),
            normalize_currency(to_currency),
            rate_type,
            value,
            effective_at,
            source=source,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded {rate_type} rate {from_currency.upper()}->{to_currency.upper()} = {value} (ID: {rate_id})")


@rate_group.command("tax")
@click.argument("country", metavar="COUNTRY_CODE")
@click.argument("rate")
@click.pass_context
def set_tax_rate(ctx, country: str, rate: str):
    """Set the VAT rate of a country, e.g. 0.19 for 19%.

    Examples:
        settleit rate tax DE 0.19
    """
    db = ctx.obj["db"]
    value = parse_amount_option(ctx, rate, "tax rate")
    db.set_tax_rate(country.upper(), value)
    click.echo(f"Set VAT rate of {country.upper()} to {value}")


def register_commands(cli):
    """Register rate commands with main CLI."""
    cli.add_command(rate_group, name="rate")
