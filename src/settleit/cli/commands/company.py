"""Operating company commands."""

import click


@click.group()
def company_group():
    """Manage operating companies."""
    pass


@company_group.command("create")
@click.argument("name", metavar="COMPANY_NAME")
@click.option(
    "--country",
    "countries",
    multiple=True,
    help="Payment country served by the company (repeatable; none means all VAT countries)",
)
@click.pass_context
def create_company(ctx, name: str, countries: tuple[str, ...]):
    """Create an operating company.

    Examples:
        settleit company create "Settle EU" --country DE --country FR
    """
    db = ctx.obj["db"]
    company_id = db.create_operating_company(name, [code.upper() for code in countries])
    click.echo(f"Created operating company '{name}' (ID: {company_id})")


@company_group.command("list")
@click.pass_context
def list_companies(ctx):
    """List operating companies."""
    db = ctx.obj["db"]

    companies = db.list_operating_companies()
    if not companies:
        click.echo("No operating companies found.")
        return

    click.echo("\nOperating companies:")
    click.echo("-" * 60)
    for c in companies:
        countries = ", ".join(c.payment_countries) or "all VAT countries"
        click.echo(f"ID: {c.id:3d} | {c.name:25s} | {countries}")


def register_commands(cli):
    """Register company commands with main CLI."""
    cli.add_command(company_group, name="company")
