"""Accounting entry commands."""

import click
from settleit.cli.error_handling import handle_domain_error, parse_amount_option
from settleit.domain import entry_types
from settleit.domain.errors import DomainError
from settleit.utils.date_parser import end_of_day, parse_date, parse_datetime, start_of_day


@click.group()
def entry_group():
    """Record and inspect accounting entries."""
    pass


@entry_group.command("add")
@click.argument("entry_type", metavar="TYPE", type=click.Choice(sorted(entry_types.ALL_TYPES)))
@click.argument("merchant_id", type=int)
@click.argument("amount")
@click.argument("currency")
@click.option("--country", default="", help="Country code of the payment")
@click.option("--company", "operating_company_id", type=int, help="Operating company ID")
@click.option("--original", nargs=2, help="Original amount and currency, e.g. --original 10.00 USD")
@click.option("--local", nargs=2, help="Local (VAT currency) amount and currency")
@click.option("--source-type", help="Type of the source object (e.g. order)")
@click.option("--source-id", help="ID of the source object")
@click.option("--at", "created_at", help="Entry timestamp (defaults to now)")
@click.pass_context
def add_entry(
    ctx,
    entry_type: str,
    merchant_id: int,
    amount: str,
    currency: str,
    country: str,
    operating_company_id: int | None,
    original: tuple[str, str] | None,
    local: tuple[str, str] | None,
    source_type: str | None,
    source_id: str | None,
    created_at: str | None,
):
    """Append an accounting entry.

    Examples:
        settleit entry add payment 1 100.00 EUR
        settleit entry add real_gross_revenue 1 10.00 EUR --country RU --original 10.00 EUR --local 980.00 RUB
    """
    engine = ctx.obj["engine"]
    value = parse_amount_option(ctx, amount)
    original_amount = parse_amount_option(ctx, original[0], "original amount") if original else None
    local_amount = parse_amount_option(ctx, local[0], "local amount") if local else None

    try:
        timestamp = parse_datetime(created_at) if created_at else None
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)

    try:
        entry_id = engine.ledger.record_entry(
            entry_type=entry_type,
            merchant_id=merchant_id,
            currency=currency,
            amount=value,
            country=country,
            operating_company_id=operating_company_id,
            original_currency=original[1] if original else None,
            original_amount=original_amount,
            local_currency=local[1] if local else None,
            local_amount=local_amount,
            source_type=source_type,
            source_id=source_id,
            created_at=timestamp,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded {entry_type} entry (ID: {entry_id})")


@entry_group.command("list")
@click.option("--merchant", "merchant_id", type=int, help="Filter by merchant ID")
@click.option("--type", "types", multiple=True, help="Filter by entry type (repeatable)")
@click.option("--country", help="Filter by country code")
@click.option("--start-date", "-s", help="Start date (YYYY-MM-DD or relative like 'today')")
@click.option("--end-date", "-e", help="End date (YYYY-MM-DD or relative like 'today')")
@click.pass_context
def list_entries(ctx, merchant_id: int | None, types: tuple[str, ...], country: str | None, start_date: str | None, end_date: str | None):
    """List accounting entries, oldest first."""
    engine = ctx.obj["engine"]

    try:
        created_from = start_of_day(parse_date(start_date)) if start_date else None
        created_to = end_of_day(parse_date(end_date)) if end_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    entries = engine.ledger.list_entries(
        merchant_id=merchant_id,
        types=types or None,
        country=country,
        created_from=created_from,
        created_to=created_to,
    )
    if not entries:
        click.echo("No entries found.")
        return

    for e in entries:
        local = f" | local {e.local_amount} {e.local_currency}" if e.local_currency else ""
        click.echo(
            f"{e.id:5d} | {e.created_at:%Y-%m-%d %H:%M} | merchant {e.merchant_id} | "
            f"{e.type:32s} | {e.amount:>12} {e.currency}{local}"
        )


def register_commands(cli):
    """Register entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
