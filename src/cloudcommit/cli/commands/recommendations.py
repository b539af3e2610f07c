import click
import json
from pathlib import Path
from rich.table import Table

from ...core.base.models import PaymentOption, RecommendationParams, Term
from ...core.exceptions import CloudCommitError
from ...core.recommendations_io import write_recommendations_csv, write_recommendations_json
from ..utils import (
    PAYMENT_OPTIONS, TERMS, get_provider, money, parse_service, provider_option, region_option, service_option,
)


@click.command()
@provider_option
@service_option
@region_option
@click.option('--term', '-t', type=click.Choice(TERMS), default='1yr', show_default=True, help='Commitment term')
@click.option('--payment-option', type=click.Choice(PAYMENT_OPTIONS), default='all-upfront', show_default=True,
              help='Payment option')
@click.option('--lookback-days', type=click.Choice(['7', '30', '60']), default='7', show_default=True,
              help='Usage history window')
@click.option('--account', '-a', 'accounts', multiple=True, help='Only keep recommendations for these accounts')
@click.option('--exclude-region', multiple=True, help='Drop recommendations for these regions')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write recommendations to a .csv or .json file')
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json']), default='table', help='Output format')
@click.pass_context
def recommendations(ctx, provider, service, region, term, payment_option, lookback_days, accounts,
                    exclude_region, output, fmt):
    """
    Fetch commitment purchase recommendations

    Examples:
        cloudcommit recommendations -p aws -s rds --term 3yr -o recs.csv
        cloudcommit recommendations -p azure -s compute -r eastus
    """
    console = ctx.obj['console']

    params = RecommendationParams(
        service=parse_service(service),
        region=region,
        term=Term.parse(term),
        payment_option=PaymentOption.parse(payment_option),
        lookback_days=int(lookback_days),
        account_ids=list(accounts),
        include_regions=[region] if region else [],
        exclude_regions=list(exclude_region),
    )

    cloud = get_provider(ctx, provider)
    with console.status(f"[bold green]Fetching {params.service.value} recommendations from {provider.upper()}..."):
        try:
            recs = cloud.get_recommendations(params)
        except CloudCommitError as e:
            raise click.ClickException(str(e))

    if fmt == 'json':
        console.print_json(json.dumps([rec.to_dict() for rec in recs]))
    else:
        _display_recommendations_table(console, recs)

    if output:
        path = Path(output)
        if path.suffix.lower() == '.json':
            write_recommendations_json(recs, path)
        else:
            write_recommendations_csv(recs, path)
        console.print(f"\n✓ {len(recs)} recommendations saved to [green]{output}[/green]")

    total_savings = sum(rec.estimated_savings for rec in recs)
    console.print(f"\n[bold]Recommendations:[/bold] {len(recs)}")
    console.print(f"  Estimated savings: [bold green]{money(total_savings)}[/bold green]")


def _display_recommendations_table(console, recs):
    """Display recommendations in a table"""

    table = Table(title="Recommendations", show_header=True, header_style="bold cyan")
    table.add_column("Region", style="cyan")
    table.add_column("Resource Type", style="magenta")
    table.add_column("Count", justify="right")
    table.add_column("Term")
    table.add_column("Payment")
    table.add_column("Account")
    table.add_column("Upfront", justify="right", style="yellow")
    table.add_column("Savings", justify="right", style="green")
    table.add_column("Savings %", justify="right", style="green")

    for rec in recs:
        table.add_row(
            rec.region,
            rec.resource_type,
            str(rec.count),
            rec.term.value,
            rec.payment_option.value,
            rec.account or "-",
            money(rec.upfront_cost),
            money(rec.estimated_savings),
            f"{rec.savings_percentage:.1f}%",
        )

    console.print(table)
