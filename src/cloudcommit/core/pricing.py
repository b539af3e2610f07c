"""Upfront/recurring/total cost splits for resolved offerings"""

from abc import ABC, abstractmethod

from .base.models import Offering, OfferingDetails, PaymentOption, PriceQuote, Term

HOURS_PER_YEAR = 8760


class PricingLookup(ABC):
    """Source of hourly on-demand and reserved rates"""

    @abstractmethod
    def get_price(self, resource_type: str, region: str, term: Term) -> PriceQuote:
        """Return hourly rates for a resource type in a region"""
        pass


def split_total(total: float, term: Term, payment_option: PaymentOption):
    """Return (upfront, monthly recurring) for a total commitment cost"""
    if payment_option == PaymentOption.NO_UPFRONT:
        return 0.0, total / term.months
    if payment_option == PaymentOption.PARTIAL_UPFRONT:
        upfront = total / 2
        return upfront, (total - upfront) / term.months
    return total, 0.0


def offering_details_from_quote(offering_id: str, resource_type: str, quote: PriceQuote,
                                term: Term, payment_option: PaymentOption) -> OfferingDetails:
    hours = HOURS_PER_YEAR * term.years
    total = quote.reserved_rate * hours
    upfront, recurring = split_total(total, term, payment_option)
    return OfferingDetails(
        offering_id=offering_id,
        resource_type=resource_type,
        term=term,
        payment_option=payment_option,
        upfront_cost=upfront,
        recurring_cost=recurring,
        total_cost=total,
        effective_hourly_rate=quote.reserved_rate,
        currency=quote.currency,
    )


def offering_details_from_offering(offering: Offering, term: Term,
                                   payment_option: PaymentOption) -> OfferingDetails:
    """Details for catalogs that price their own offerings"""
    hours = HOURS_PER_YEAR * term.years
    upfront = float(offering.fixed_price or 0.0)
    hourly = offering.hourly_recurring() or offering.usage_price
    recurring_total = hourly * hours
    total = upfront + recurring_total
    return OfferingDetails(
        offering_id=offering.offering_id,
        resource_type=offering.resource_type,
        term=term,
        payment_option=payment_option,
        upfront_cost=upfront,
        recurring_cost=recurring_total / term.months,
        total_cost=total,
        effective_hourly_rate=total / hours if hours else 0.0,
        currency=offering.currency,
    )
