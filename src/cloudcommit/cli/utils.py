"""Options and helpers shared by the CLI commands"""

from typing import Callable, Optional

import click

from ..core.base.models import (
    NO_DETAILS,
    DETAILS_BY_SERVICE,
    CommitmentType,
    PaymentOption,
    ProviderType,
    Recommendation,
    ServiceType,
    Term,
)
from ..core.base.provider import CloudProvider
from ..core.exceptions import CloudCommitError
from ..providers import registry

TERMS = ['1yr', '3yr']
PAYMENT_OPTIONS = [p.value for p in PaymentOption]


def provider_option(f: Callable) -> Callable:
    return click.option('--provider', '-p', type=click.Choice(registry.list_providers()),
                        default='aws', show_default=True, help='Cloud provider')(f)


def service_option(f: Callable) -> Callable:
    return click.option('--service', '-s', required=True,
                        help='Service type (compute, relational-db, cache, ... or ec2, rds, elasticache, ...)')(f)


def region_option(f: Callable) -> Callable:
    return click.option('--region', '-r', help='Region (defaults to the provider default)')(f)


def get_provider(ctx: click.Context, name: str) -> CloudProvider:
    try:
        return registry.create(name, ctx.obj['settings'])
    except CloudCommitError as e:
        raise click.ClickException(str(e))


def parse_service(value: str) -> ServiceType:
    try:
        return ServiceType.parse(value)
    except CloudCommitError as e:
        raise click.BadParameter(str(e), param_hint='--service')


def build_recommendation(provider: str, service: ServiceType, region: str, resource_type: str,
                         count: int, term: str, payment_option: str,
                         engine: Optional[str] = None, plan_type: Optional[str] = None,
                         hourly_commitment: float = 0.0) -> Recommendation:
    """Recommendation for a single ad-hoc command line request"""
    details = NO_DETAILS
    commitment_type = CommitmentType.RESERVED_INSTANCE
    if service == ServiceType.SAVINGS_PLANS:
        details = DETAILS_BY_SERVICE[service](plan_type=plan_type or resource_type,
                                              hourly_commitment=hourly_commitment)
        commitment_type = CommitmentType.SAVINGS_PLAN
    elif engine and service in (ServiceType.RELATIONAL_DB, ServiceType.CACHE):
        details = DETAILS_BY_SERVICE[service](engine=engine)
    if ProviderType.parse(provider) == ProviderType.GCP:
        commitment_type = CommitmentType.COMMITTED_USE

    return Recommendation(
        provider=ProviderType.parse(provider),
        service=service,
        region=region,
        resource_type=resource_type,
        count=count,
        term=Term.parse(term),
        payment_option=PaymentOption.parse(payment_option),
        commitment_type=commitment_type,
        details=details,
        source_recommendation='cli',
    )


def money(value: float, currency: str = 'USD') -> str:
    symbol = '$' if currency in ('USD', '') else f'{currency} '
    return f"{symbol}{value:,.2f}"
