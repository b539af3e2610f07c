import click

from ...core.exceptions import CloudCommitError
from ..utils import get_provider, parse_service, provider_option, region_option, service_option


@click.command(name='resource-types')
@provider_option
@service_option
@region_option
@click.pass_context
def resource_types(ctx, provider, service, region):
    """
    List resource types commitments can be bought for

    Examples:
        cloudcommit resource-types -p aws -s ec2 -r us-west-2
    """
    console = ctx.obj['console']
    cloud = get_provider(ctx, provider)

    try:
        client = cloud.get_service_client(parse_service(service), region)
        types = client.list_valid_resource_types()
    except CloudCommitError as e:
        raise click.ClickException(str(e))

    for name in types:
        console.print(f"  {name}")
    console.print(f"\n[bold]{len(types)}[/bold] resource types for {client.service_label or client.service_type.value}")
