import click
from pathlib import Path
from rich.table import Table

from ...core.exceptions import CloudCommitError
from ...core.recommendations_io import write_commitments_csv
from ..utils import get_provider, money, parse_service, provider_option, region_option, service_option


@click.command()
@provider_option
@service_option
@region_option
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write commitments to a CSV file')
@click.pass_context
def commitments(ctx, provider, service, region, output):
    """
    List active and payment-pending commitments

    Examples:
        cloudcommit commitments -p aws -s ec2 -r eu-west-1
        cloudcommit commitments -p gcp -s compute -o cuds.csv
    """
    console = ctx.obj['console']
    cloud = get_provider(ctx, provider)

    try:
        client = cloud.get_service_client(parse_service(service), region)
        with console.status(f"[bold green]Listing commitments in {client.region}..."):
            found = client.list_commitments()
    except CloudCommitError as e:
        raise click.ClickException(str(e))

    table = Table(title=f"{provider.upper()} Commitments", show_header=True, header_style="bold cyan")
    table.add_column("Commitment ID", style="cyan")
    table.add_column("Resource Type", style="magenta")
    table.add_column("Count", justify="right")
    table.add_column("State")
    table.add_column("Term")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Cost", justify="right", style="yellow")

    for commitment in found:
        table.add_row(
            commitment.commitment_id,
            commitment.resource_type,
            str(commitment.count),
            commitment.state.value,
            commitment.term.value,
            commitment.start_date.strftime('%Y-%m-%d') if commitment.start_date else "-",
            commitment.end_date.strftime('%Y-%m-%d') if commitment.end_date else "-",
            money(commitment.cost),
        )

    console.print(table)
    console.print(f"\nTotal commitments: [bold green]{len(found)}[/bold green]")

    if output:
        write_commitments_csv(found, Path(output))
        console.print(f"✓ Commitments saved to [green]{output}[/green]")
