"""Payout document commands."""

import click
from settleit.cli.error_handling import handle_domain_error
from settleit.domain.errors import DomainError
from settleit.domain.statuses import PayoutStatus


@click.group()
def payout_group():
    """Create and settle payout documents."""
    pass


@payout_group.command("create")
@click.argument("merchant_id", type=int)
@click.option("--description", help="Payout description")
@click.pass_context
def create_payout(ctx, merchant_id: int, description: str | None):
    """Create a payout document from the merchant's accepted reports.

    Examples:
        settleit payout create 3 --description "March payout"
    """
    engine = ctx.obj["engine"]
    try:
        document = engine.payout.create(merchant_id, description=description, source="admin")
    except DomainError as e:
        handle_domain_error(ctx, e)
    engine.payout.wait_for_exports()
    click.echo(
        f"Created payout document {document.id} ({document.status.value}): "
        f"{document.balance} {document.currency} from reports {', '.join(map(str, document.source_ids))}"
    )


@payout_group.command("auto")
@click.pass_context
def auto_create(ctx):
    """Create payout documents for every merchant with something to pay."""
    engine = ctx.obj["engine"]
    result = engine.payout.auto_create()
    engine.payout.wait_for_exports()

    for merchant_id, document_id in sorted(result.succeeded.items()):
        click.echo(f"Merchant {merchant_id}: payout document {document_id}")
    for merchant_id, error in sorted(result.errors.items()):
        click.echo(f"Merchant {merchant_id}: failed: {error}", err=True)
    if not result.ok:
        ctx.exit(1)


@payout_group.command("update")
@click.argument("document_id", type=int)
@click.argument(
    "status",
    type=click.Choice([PayoutStatus.PAID.value, PayoutStatus.FAILED.value, PayoutStatus.CANCELED.value]),
)
@click.option("--transaction", "transaction_id", help="Bank transaction id (paid)")
@click.option("--failure-code", help="Failure code (failed)")
@click.option("--failure-message", help="Failure message (failed)")
@click.option("--failure-transaction", help="Failed transaction id (failed)")
@click.pass_context
def update_payout(
    ctx,
    document_id: int,
    status: str,
    transaction_id: str | None,
    failure_code: str | None,
    failure_message: str | None,
    failure_transaction: str | None,
):
    """Settle a pending payout document.

    Examples:
        settleit payout update 7 paid --transaction TX-1001
        settleit payout update 7 failed --failure-code 51 --failure-message "Account closed"
    """
    engine = ctx.obj["engine"]
    try:
        document = engine.payout.update(
            document_id,
            PayoutStatus(status),
            transaction_id=transaction_id,
            failure_code=failure_code,
            failure_message=failure_message,
            failure_transaction=failure_transaction,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Payout document {document.id} is now {document.status.value}")


@payout_group.command("list")
@click.option("--merchant", "merchant_id", type=int, help="Filter by merchant ID")
@click.option(
    "--status",
    "statuses",
    multiple=True,
    type=click.Choice([s.value for s in PayoutStatus]),
    help="Filter by status (repeatable)",
)
@click.pass_context
def list_payouts(ctx, merchant_id: int | None, statuses: tuple[str, ...]):
    """List payout documents, newest first."""
    engine = ctx.obj["engine"]
    documents = engine.payout.list_documents(merchant_id=merchant_id, statuses=statuses or None)
    if not documents:
        click.echo("No payout documents found.")
        return

    for d in documents:
        click.echo(
            f"{d.id:5d} | merchant {d.merchant_id} | {d.created_at:%Y-%m-%d} | {d.status.value:8s} | "
            f"{d.balance:>12} {d.currency} | arrival {d.arrival_date:%Y-%m-%d}"
        )


def register_commands(cli):
    """Register payout commands with main CLI."""
    cli.add_command(payout_group, name="payout")
