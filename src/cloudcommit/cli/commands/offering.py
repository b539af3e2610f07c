import click
from rich.panel import Panel

from ...core.exceptions import CloudCommitError
from ..utils import (
    PAYMENT_OPTIONS, TERMS, build_recommendation, get_provider, money, parse_service, provider_option,
    region_option, service_option,
)


@click.command()
@provider_option
@service_option
@region_option
@click.option('--resource-type', required=True, help='Instance class, node type, SKU or Savings Plan type')
@click.option('--count', '-c', type=click.IntRange(min=1), default=1, show_default=True)
@click.option('--term', '-t', type=click.Choice(TERMS), default='1yr', show_default=True)
@click.option('--payment-option', type=click.Choice(PAYMENT_OPTIONS), default='all-upfront', show_default=True)
@click.option('--engine', help='Database or cache engine')
@click.option('--hourly-commitment', type=float, default=0.0, help='Savings Plan hourly commitment')
@click.pass_context
def offering(ctx, provider, service, region, resource_type, count, term, payment_option, engine,
             hourly_commitment):
    """
    Resolve and price the offering for a single commitment

    Examples:
        cloudcommit offering -s rds --resource-type db.r6g.large --engine postgres -r us-east-1
        cloudcommit offering -p azure -s compute --resource-type Standard_D4s_v5 -r eastus
    """
    console = ctx.obj['console']
    cloud = get_provider(ctx, provider)

    try:
        rec = build_recommendation(
            provider, parse_service(service), region or cloud.get_default_region(), resource_type,
            count, term, payment_option, engine=engine, hourly_commitment=hourly_commitment,
        )
        client = cloud.client_for(rec)
        with console.status("[bold green]Resolving offering..."):
            details = client.get_offering_details(rec)
    except CloudCommitError as e:
        raise click.ClickException(str(e))

    lines = [
        f"Offering ID: [cyan]{details.offering_id}[/cyan]",
        f"Resource type: [magenta]{details.resource_type}[/magenta]",
        f"Term: {details.term.value}    Payment: {details.payment_option.value}",
        f"Upfront: [yellow]{money(details.upfront_cost, details.currency)}[/yellow]",
        f"Monthly recurring: [yellow]{money(details.recurring_cost, details.currency)}[/yellow]",
        f"Total per unit: [bold yellow]{money(details.total_cost, details.currency)}[/bold yellow]",
        f"Effective hourly rate: {money(details.effective_hourly_rate, details.currency)}",
        f"Total for {count}: [bold]{money(details.total_cost * count, details.currency)}[/bold]",
    ]
    console.print(Panel("\n".join(lines), title=f"{provider.upper()} offering", expand=False))
