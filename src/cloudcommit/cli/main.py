import click
import logging
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler

from .. import __version__
from ..core.config import get_settings, reload_settings
from ..core.exceptions import CloudCommitError
from ..core.logging import setup_logging
from .commands import commitments, offering, purchase, recommendations, resource_types

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name='cloudcommit')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', type=click.Path(exists=True, dir_okay=False), help='Path to configuration file')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write logs to this file')
@click.option('--structured', is_flag=True, help='Write JSON log lines to the log file')
@click.pass_context
def cli(ctx, debug, config, log_file, structured):
    """
    cloudcommit - Reserved capacity purchasing across clouds

    Turn AWS, Azure and GCP commitment recommendations into purchases:
    match each one to a catalog offering, buy it, and report the result.
    """
    ctx.ensure_object(dict)

    try:
        settings = reload_settings(Path(config)) if config else get_settings()
    except (CloudCommitError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    level = 'DEBUG' if debug or settings.debug else settings.logging.level
    setup_logging(
        level=level,
        log_file=Path(log_file) if log_file else settings.logging.file,
        structured=structured or settings.logging.structured,
        audit_file=settings.logging.audit_file,
        handler=RichHandler(console=console, rich_tracebacks=True, show_path=debug),
    )

    ctx.obj['settings'] = settings
    ctx.obj['console'] = console
    ctx.obj['debug'] = debug


# Register commands
cli.add_command(recommendations.recommendations)
cli.add_command(purchase.purchase)
cli.add_command(commitments.commitments)
cli.add_command(offering.offering)
cli.add_command(resource_types.resource_types)


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information"""
    console.print(f"[bold blue]cloudcommit[/bold blue] version [green]{__version__}[/green]")
    console.print("Commitment matching and purchase orchestration")


if __name__ == '__main__':
    cli()
