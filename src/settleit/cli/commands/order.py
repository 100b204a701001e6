"""Order read-model commands."""

import click
from settleit.cli.error_handling import parse_amount_option
from settleit.utils.date_parser import parse_datetime, utcnow


@click.group()
def order_group():
    """Feed the order read-model used by VAT reports."""
    pass


@order_group.command("add")
@click.argument("merchant_id", type=int)
@click.argument("country", metavar="COUNTRY_CODE")
@click.option("--company", "operating_company_id", type=int, help="Operating company ID")
@click.option("--closed-at", help="Close timestamp (defaults to now)")
@click.option("--gross", default="0", help="Gross revenue in local currency")
@click.option("--tax", default="0", help="Tax in local currency")
@click.option("--refund-gross", default="0", help="Refunded gross revenue in local currency")
@click.option("--refund-tax", default="0", help="Refunded tax in local currency")
@click.option("--fees", default="0", help="Fees in local currency")
@click.option("--refund-fees", default="0", help="Refund fees in local currency")
@click.option("--vat-deduction", is_flag=True, help="Order is a VAT deduction")
@click.option("--test", "is_test", is_flag=True, help="Order was made in test mode")
@click.pass_context
def add_order(
    ctx,
    merchant_id: int,
    country: str,
    operating_company_id: int | None,
    closed_at: str | None,
    gross: str,
    tax: str,
    refund_gross: str,
    refund_tax: str,
    fees: str,
    refund_fees: str,
    vat_deduction: bool,
    is_test: bool,
):
    """Record a processed order.

    Examples:
        settleit order add 1 DE --gross 119.00 --tax 19.00 --fees 3.50
    """
    db = ctx.obj["db"]

    try:
        closed = parse_datetime(closed_at) if closed_at else utcnow()
    except ValueError as e:
        click.echo(f"Error: Invalid timestamp: {e}", err=True)
        ctx.exit(1)

    order_id = db.add_order(
        merchant_id=merchant_id,
        country=country.upper(),
        closed_at=closed,
        operating_company_id=operating_company_id,
        is_production=not is_test,
        is_vat_deduction=vat_deduction,
        payment_gross_revenue_local=parse_amount_option(ctx, gross, "gross"),
        payment_tax_fee_local=parse_amount_option(ctx, tax, "tax"),
        payment_refund_gross_revenue_local=parse_amount_option(ctx, refund_gross, "refund gross"),
        payment_refund_tax_fee_local=parse_amount_option(ctx, refund_tax, "refund tax"),
        fees_total_local=parse_amount_option(ctx, fees, "fees"),
        refund_fees_total_local=parse_amount_option(ctx, refund_fees, "refund fees"),
    )
    click.echo(f"Recorded order (ID: {order_id})")


def register_commands(cli):
    """Register order commands with main CLI."""
    cli.add_command(order_group, name="order")
