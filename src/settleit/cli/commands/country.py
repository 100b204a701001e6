"""Country VAT configuration commands."""

import click
from settleit.cli.error_handling import handle_domain_error, parse_amount_option
from settleit.domain.entities import Country
from settleit.domain.errors import DomainError
from settleit.domain.ledger import normalize_currency
from settleit.domain.statuses import CurrencyRatesPolicy
from settleit.utils.periods import VAT_PERIODS


@click.group()
def country_group():
    """Manage countries and their VAT settings."""
    pass


@country_group.command("set")
@click.argument("code", metavar="COUNTRY_CODE")
@click.option("--name", help="Country name (defaults to the code)")
@click.option("--currency", required=True, help="VAT reporting currency")
@click.option("--vat/--no-vat", default=True, show_default=True, help="Country charges VAT")
@click.option(
    "--period-months",
    type=click.Choice([str(p) for p in VAT_PERIODS]),
    default="3",
    show_default=True,
    help="VAT period length in months",
)
@click.option("--deadline-days", type=int, default=25, show_default=True, help="Days to pay after period end")
@click.option("--threshold-year", default="0", help="Yearly in-country turnover threshold")
@click.option("--threshold-world", default="0", help="Yearly worldwide turnover threshold")
@click.option(
    "--rates-policy",
    type=click.Choice([p.value for p in CurrencyRatesPolicy]),
    default=CurrencyRatesPolicy.ON_DAY.value,
    show_default=True,
    help="How revenue is converted into the VAT currency",
)
@click.option("--rates-source", default="", help="Central bank rate source")
@click.pass_context
def set_country(
    ctx,
    code: str,
    name: str | None,
    currency: str,
    vat: bool,
    period_months: str,
    deadline_days: int,
    threshold_year: str,
    threshold_world: str,
    rates_policy: str,
    rates_source: str,
):
    """Create or update a country.

    Examples:
        settleit country set DE --name Germany --currency EUR --period-months 1
        settleit country set RU --currency RUB --rates-policy last-day --rates-source RUCBRF
    """
    db = ctx.obj["db"]
    code = code.upper()
    if len(code) != 2:
        click.echo(f"Error: Country code must have 2 letters, got '{code}'", err=True)
        ctx.exit(1)

    year_limit = parse_amount_option(ctx, threshold_year, "yearly threshold")
    world_limit = parse_amount_option(ctx, threshold_world, "world threshold")

    try:
        country = Country(
            code=code,
            name=name or code,
            vat_enabled=vat,
            currency=normalize_currency(currency),
            vat_period_months=int(period_months),
            vat_deadline_days=deadline_days,
            vat_threshold_year=year_limit,
            vat_threshold_world=world_limit,
            vat_rates_policy=CurrencyRatesPolicy(rates_policy),
            vat_rates_source=rates_source,
        )
        db.save_country(country)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Saved country {code} ({country.currency}, VAT {'on' if vat else 'off'})")


@country_group.command("list")
@click.option("--vat-only", is_flag=True, help="Only VAT-enabled countries")
@click.pass_context
def list_countries(ctx, vat_only: bool):
    """List countries."""
    db = ctx.obj["db"]

    countries = db.list_countries(vat_enabled=True if vat_only else None)
    if not countries:
        click.echo("No countries found.")
        return

    click.echo("\nCountries:")
    click.echo("-" * 70)
    for c in countries:
        vat = f"VAT every {c.vat_period_months}m, {c.vat_rates_policy.value}" if c.vat_enabled else "no VAT"
        click.echo(f"{c.code} | {c.name:20s} | {c.currency} | {vat}")


def register_commands(cli):
    """Register country commands with main CLI."""
    cli.add_command(country_group, name="country")
