"""Main CLI entry point."""

import logging

import click
import pydantic
from settleit.config import ENV_PREFIX, Settings
from settleit.database.factories import create_sqlite_database
from settleit.domain.engine import ReconciliationEngine

# Import and register all commands at module level
from settleit.cli.commands import (
    merchant,
    country,
    company,
    rate,
    entry,
    order,
    royalty,
    balance,
    payout,
    turnover,
    vat,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides SETTLEIT_DB_PATH environment variable)",
    envvar="SETTLEIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Settleit - Merchant billing reconciliation.

    Builds royalty reports from the accounting ledger, keeps merchant
    balances, issues payout documents and prepares VAT reports.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = Settings()
        except pydantic.ValidationError as e:
            for error in e.errors():
                name = ENV_PREFIX + str(error["loc"][0]).upper()
                click.echo(f"Error: Invalid configuration: {name}: {error['msg']}", err=True)
            ctx.exit(1)

        db = create_sqlite_database(database_path=db_path or settings.db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.obj["engine"] = ReconciliationEngine(db, settings)


# Register all commands
merchant.register_commands(cli)
country.register_commands(cli)
company.register_commands(cli)
rate.register_commands(cli)
entry.register_commands(cli)
order.register_commands(cli)
royalty.register_commands(cli)
balance.register_commands(cli)
payout.register_commands(cli)
turnover.register_commands(cli)
vat.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
