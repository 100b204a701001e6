"""Merchant balance commands."""

import click
from settleit.cli.error_handling import handle_domain_error
from settleit.domain.errors import DomainError


def _echo_balance(balance):
    click.echo(f"Merchant {balance.merchant_id} balance ({balance.currency}):")
    click.echo(f"  Debit:           {balance.debit:>14}")
    click.echo(f"  Credit:          {balance.credit:>14}")
    click.echo(f"  Rolling reserve: {balance.rolling_reserve:>14}")
    click.echo(f"  Total:           {balance.total:>14}")


@click.group()
def balance_group():
    """Inspect and recompute merchant balances."""
    pass


@balance_group.command("show")
@click.argument("merchant_id", type=int)
@click.pass_context
def show_balance(ctx, merchant_id: int):
    """Show the latest balance snapshot of a merchant."""
    engine = ctx.obj["engine"]
    try:
        balance = engine.balance.get(merchant_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _echo_balance(balance)


@balance_group.command("recompute")
@click.argument("merchant_id", type=int)
@click.pass_context
def recompute_balance(ctx, merchant_id: int):
    """Recompute a merchant balance from reports, payouts and reserves."""
    engine = ctx.obj["engine"]
    try:
        balance = engine.balance.compute(merchant_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _echo_balance(balance)


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(balance_group, name="balance")
