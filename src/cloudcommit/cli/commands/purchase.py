import click
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.prompt import Confirm
from rich.table import Table

from ...core.base.models import PurchaseResult, Recommendation
from ...core.base.service import BaseServiceClient
from ...core.batch import UNATTEMPTED_MESSAGE, summarize
from ...core.duplicates import DuplicateChecker
from ...core.exceptions import CloudCommitError
from ...core.recommendations_io import load_recommendations, write_results_csv
from ..utils import get_provider, money

Plan = List[Tuple[Recommendation, BaseServiceClient]]


@click.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--dry-run/--no-dry-run', default=None,
              help='Only resolve offerings, never purchase (default from config)')
@click.option('--delay', type=float, help='Seconds to wait between purchases (default from config)')
@click.option('--skip-duplicates/--no-skip-duplicates', default=None,
              help='Subtract commitments bought within the lookback window')
@click.option('--lookback-hours', type=int, help='Duplicate detection window in hours')
@click.option('--yes', '-y', 'auto_approve', is_flag=True, help='Do not ask for confirmation')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write purchase results to a CSV file')
@click.pass_context
def purchase(ctx, input_file, dry_run, delay, skip_duplicates, lookback_hours, auto_approve, output):
    """
    Purchase commitments from a recommendations file (CSV, JSON or YAML)

    Examples:
        cloudcommit purchase recs.csv --dry-run
        cloudcommit purchase recs.yaml --no-dry-run --delay 10 -o results.csv
    """
    console = ctx.obj['console']
    config = ctx.obj['settings'].purchase

    dry_run = config.dry_run if dry_run is None else dry_run
    delay = config.delay_seconds if delay is None else delay
    skip_duplicates = config.skip_duplicates if skip_duplicates is None else skip_duplicates
    lookback_hours = config.duplicate_lookback_hours if lookback_hours is None else lookback_hours

    console.print(f"\n[bold]Commitment Purchase[/bold]")
    console.print(f"Mode: [{'yellow' if dry_run else 'red'}]{'DRY RUN' if dry_run else 'LIVE'}[/{'yellow' if dry_run else 'red'}]")

    try:
        recs = load_recommendations(Path(input_file))
    except CloudCommitError as e:
        raise click.ClickException(str(e))
    console.print(f"✓ Loaded {len(recs)} recommendations from [green]{input_file}[/green]")

    try:
        plan = _route(ctx, recs)
        if skip_duplicates:
            plan = _skip_duplicates(console, plan, lookback_hours)
    except CloudCommitError as e:
        raise click.ClickException(str(e))

    if not plan:
        console.print("[yellow]Nothing to purchase[/yellow]")
        return

    if dry_run:
        console.print("\n[yellow]DRY RUN - No purchases will be made[/yellow]")
        _display_validation_table(console, plan)
        return

    _display_plan_table(console, plan)
    if not auto_approve:
        if not Confirm.ask(f"\n[yellow]Purchase {len(plan)} commitments?[/yellow]"):
            console.print("[red]Purchase cancelled[/red]")
            return

    results = _run_cancellable(console, plan, delay)

    _display_results_table(console, results)
    summary = summarize(results)
    console.print(f"\n[bold]Purchase Summary:[/bold]")
    console.print(f"  Successful: [bold green]{summary.successful}[/bold green] / {summary.total}")
    console.print(f"  Failed: [bold red]{summary.failed}[/bold red]")
    console.print(f"  Total cost: [bold yellow]{money(summary.total_cost)}[/bold yellow]")

    if output:
        write_results_csv(results, Path(output))
        console.print(f"\n✓ Results saved to [green]{output}[/green]")

    if summary.failed:
        ctx.exit(1)


def _route(ctx, recs: List[Recommendation]) -> Plan:
    """Pair each recommendation with the client that can buy it"""
    providers = {}
    plan = []
    for rec in recs:
        name = rec.provider.value
        if name not in providers:
            providers[name] = get_provider(ctx, name)
        plan.append((rec, providers[name].client_for(rec)))
    return plan


def _clients(plan: Plan) -> List[BaseServiceClient]:
    clients: Dict[int, BaseServiceClient] = {}
    for _, client in plan:
        clients.setdefault(id(client), client)
    return list(clients.values())


def _skip_duplicates(console, plan: Plan, lookback_hours: int) -> Plan:
    checker = DuplicateChecker(lookback_hours)
    existing = {}
    for client in _clients(plan):
        label = client.service_label or client.service_type.value
        with console.status(f"[bold green]Listing {label} commitments in {client.region}..."):
            existing[id(client)] = client.list_commitments()

    adjusted = []
    for rec, client in plan:
        adjusted.extend((kept, client) for kept in checker.adjust([rec], existing[id(client)]))

    dropped = len(plan) - len(adjusted)
    if dropped:
        console.print(f"✓ Dropped [yellow]{dropped}[/yellow] recommendations already purchased")
    return adjusted


def _run_batch(plan: Plan, delay: float, cancel_event: threading.Event) -> List[PurchaseResult]:
    results: List[Optional[PurchaseResult]] = [None] * len(plan)

    for n, client in enumerate(_clients(plan)):
        indexes = [i for i, (_, c) in enumerate(plan) if c is client]
        if n and delay > 0 and cancel_event.wait(delay):
            break
        if cancel_event.is_set():
            break
        group = client.batch_purchase([plan[i][0] for i in indexes], delay, cancel_event)
        for i, result in zip(indexes, group):
            results[i] = result

    return [
        result if result is not None else PurchaseResult.failed(plan[i][0], UNATTEMPTED_MESSAGE)
        for i, result in enumerate(results)
    ]


def _run_cancellable(console, plan: Plan, delay: float) -> List[PurchaseResult]:
    """Run the batch in a worker thread so Ctrl-C can stop it between purchases"""
    cancel_event = threading.Event()
    outcome = {}

    def work():
        outcome['results'] = _run_batch(plan, delay, cancel_event)

    worker = threading.Thread(target=work, name='purchase-batch', daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelling: no further purchases will be started[/yellow]")
        cancel_event.set()
        worker.join()

    return outcome['results']


def _display_plan_table(console, plan: Plan):
    table = Table(title="Purchase Plan", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Provider", style="cyan")
    table.add_column("Service", style="magenta")
    table.add_column("Region")
    table.add_column("Resource Type")
    table.add_column("Count", justify="right")
    table.add_column("Term")
    table.add_column("Payment")
    table.add_column("Est. Cost", justify="right", style="yellow")

    for i, (rec, _) in enumerate(plan, 1):
        table.add_row(
            str(i),
            rec.provider.value.upper(),
            rec.service.value,
            rec.region,
            rec.resource_type,
            str(rec.count),
            rec.term.value,
            rec.payment_option.value,
            money(rec.commitment_cost),
        )

    console.print(table)


def _display_validation_table(console, plan: Plan):
    """Resolve every offering without purchasing"""

    table = Table(title="Offering Validation", show_header=True, header_style="bold cyan")
    table.add_column("Resource Type", style="magenta")
    table.add_column("Region")
    table.add_column("Count", justify="right")
    table.add_column("Term")
    table.add_column("Status")
    table.add_column("Offering / Error")

    valid = 0
    for rec, client in plan:
        try:
            found = client.validate_offering(rec)
            valid += 1
            table.add_row(rec.resource_type, rec.region, str(rec.count), rec.term.value,
                          "[green]✓ valid[/green]", found.offering_id)
        except CloudCommitError as e:
            table.add_row(rec.resource_type, rec.region, str(rec.count), rec.term.value,
                          "[red]✗ invalid[/red]", str(e))

    console.print(table)
    console.print(f"\n[bold]{valid}[/bold] of {len(plan)} recommendations resolved to an offering")


def _display_results_table(console, results: List[PurchaseResult]):
    table = Table(title="Purchase Results", show_header=True, header_style="bold cyan")
    table.add_column("Resource Type", style="magenta")
    table.add_column("Region")
    table.add_column("Count", justify="right")
    table.add_column("Status")
    table.add_column("Commitment ID")
    table.add_column("Cost", justify="right", style="yellow")
    table.add_column("Message")

    for result in results:
        rec = result.recommendation
        table.add_row(
            rec.resource_type,
            rec.region,
            str(rec.count),
            "[green]✓[/green]" if result.success else "[red]✗[/red]",
            result.commitment_id or "-",
            money(result.cost, result.currency) if result.success else "-",
            result.message,
        )

    console.print(table)
