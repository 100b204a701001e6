"""Merchant management commands."""

import click
from settleit.cli.error_handling import handle_domain_error, parse_amount_option
from settleit.domain.errors import DomainError
from settleit.domain.ledger import normalize_currency


@click.group()
def merchant_group():
    """Manage merchants."""
    pass


@merchant_group.command("create")
@click.argument("name", metavar="MERCHANT_NAME")
@click.option("--currency", help="Payout currency (ISO 4217 code)")
@click.option("--min-payout", default="0", show_default=True, help="Minimum payout amount")
@click.option("--email", help="Email address for report notifications")
@click.option("--email-authorized", is_flag=True, help="Email address has been confirmed")
@click.pass_context
def create_merchant(ctx, name: str, currency: str | None, min_payout: str, email: str | None, email_authorized: bool):
    """Create a new merchant.

    Examples:
        settleit merchant create "Acme Games" --currency EUR --min-payout 100
        settleit merchant create "Indie Studio" --currency USD --email ops@indie.test --email-authorized
    """
    db = ctx.obj["db"]
    min_payout_amount = parse_amount_option(ctx, min_payout, "minimum payout")

    try:
        payout_currency = normalize_currency(currency) if currency else None
        merchant_id = db.create_merchant(
            name=name,
            payout_currency=payout_currency,
            min_payout_amount=min_payout_amount,
            email=email,
            email_authorized=email_authorized,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created merchant '{name}' (ID: {merchant_id})")


@merchant_group.command("list")
@click.pass_context
def list_merchants(ctx):
    """List all merchants."""
    db = ctx.obj["db"]

    merchants = db.list_merchants()
    if not merchants:
        click.echo("No merchants found.")
        return

    click.echo("\nMerchants:")
    click.echo("-" * 70)
    for m in merchants:
        currency = m.payout_currency or "-"
        click.echo(f"ID: {m.id:3d} | {m.name:25s} | {currency:3s} | Min payout: {m.min_payout_amount}")


def register_commands(cli):
    """Register merchant commands with main CLI."""
    cli.add_command(merchant_group, name="merchant")
