"""CLI error handling helpers."""

import click

from settleit.domain.errors import DomainError
from settleit.utils.amount_parser import parse_amount


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    code = getattr(error, "code", None)
    if code:
        click.echo(f"Error: {error} [{code}]", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def parse_amount_option(ctx: click.Context, value: str, label: str = "amount"):
    """Parse a money option or exit with an error."""
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
