"""Tests for offering pricing details"""

import pytest

from cloudcommit.core.base.models import PaymentOption, PriceQuote, RecurringCharge, Term
from cloudcommit.core.pricing import (
    HOURS_PER_YEAR,
    PricingLookup,
    offering_details_from_offering,
    offering_details_from_quote,
    split_total,
)


class StaticPricing(PricingLookup):
    def __init__(self, quote):
        self.quote = quote
        self.calls = []

    def get_price(self, resource_type, region, term):
        self.calls.append((resource_type, region, term))
        return self.quote


class TestSplitTotal:
    """Test upfront/recurring splits"""

    def test_all_upfront(self):
        assert split_total(1200.0, Term.ONE_YEAR, PaymentOption.ALL_UPFRONT) == (1200.0, 0.0)

    def test_no_upfront(self):
        assert split_total(1200.0, Term.ONE_YEAR, PaymentOption.NO_UPFRONT) == (0.0, 100.0)

    def test_partial_upfront(self):
        """Half is paid upfront, the rest spread over the term"""
        upfront, monthly = split_total(3600.0, Term.THREE_YEAR, PaymentOption.PARTIAL_UPFRONT)
        assert upfront == 1800.0
        assert monthly == 50.0


class TestOfferingDetails:
    """Test pricing views of resolved offerings"""

    def test_from_quote(self):
        quote = PriceQuote(on_demand_rate=0.2, reserved_rate=0.1, currency="EUR")
        details = offering_details_from_quote("off-1", "Standard_D2s_v3", quote, Term.ONE_YEAR,
                                              PaymentOption.NO_UPFRONT)

        assert details.total_cost == pytest.approx(0.1 * HOURS_PER_YEAR)
        assert details.upfront_cost == 0.0
        assert details.recurring_cost == pytest.approx(0.1 * HOURS_PER_YEAR / 12)
        assert details.effective_hourly_rate == 0.1
        assert details.currency == "EUR"

    def test_from_offering(self, make_offering):
        offering = make_offering(fixed_price=876.0, recurring_charges=(RecurringCharge(0.1),))
        details = offering_details_from_offering(offering, Term.ONE_YEAR, PaymentOption.PARTIAL_UPFRONT)

        assert details.upfront_cost == 876.0
        assert details.total_cost == pytest.approx(876.0 + 876.0)
        assert details.recurring_cost == pytest.approx(876.0 / 12)
        assert details.effective_hourly_rate == pytest.approx(0.2)

    def test_from_offering_usage_price(self, make_offering):
        offering = make_offering(fixed_price=None, usage_price=0.05)
        details = offering_details_from_offering(offering, Term.THREE_YEAR, PaymentOption.NO_UPFRONT)

        assert details.upfront_cost == 0.0
        assert details.total_cost == pytest.approx(0.05 * HOURS_PER_YEAR * 3)


class TestServiceClientOfferingDetails:
    """Offering details through a service client"""

    def test_catalog_priced(self, fake_client_cls, redshift_catalog, make_recommendation):
        client = fake_client_cls(pages=redshift_catalog)
        details = client.get_offering_details(make_recommendation())

        assert details.offering_id == "off-dc2"
        assert details.upfront_cost == 1000.0
        assert details.term == Term.ONE_YEAR

    def test_lookup_priced(self, fake_client_cls, redshift_catalog, make_recommendation):
        client = fake_client_cls(pages=redshift_catalog)
        client.pricing = StaticPricing(PriceQuote(on_demand_rate=0.25, reserved_rate=0.15))

        details = client.get_offering_details(make_recommendation(payment_option=PaymentOption.ALL_UPFRONT))

        assert client.pricing.calls == [("dc2.large", "us-east-1", Term.ONE_YEAR)]
        assert details.upfront_cost == pytest.approx(0.15 * HOURS_PER_YEAR)
        assert details.recurring_cost == 0.0
