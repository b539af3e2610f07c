"""Tests for batch purchasing"""

import threading
from unittest.mock import MagicMock

from cloudcommit.core.base.models import PurchaseResult, ServiceType
from cloudcommit.core.batch import UNATTEMPTED_MESSAGE, BatchPurchaseDriver, summarize


class TestBatchPurchaseDriver:
    """Test sequential batch purchasing"""

    def test_one_result_per_input(self, fake_client_cls, redshift_catalog, make_recommendation):
        """Failures do not stop the batch; order is preserved"""
        client = fake_client_cls(pages=redshift_catalog)
        recs = [
            make_recommendation(),
            make_recommendation(resource_type="ra3.4xlarge"),
            make_recommendation(count=1),
        ]
        sleep = MagicMock()

        results = BatchPurchaseDriver(client.executor, sleep=sleep).purchase_all(recs, delay=2.5)

        assert [r.success for r in results] == [True, False, True]
        assert [r.recommendation for r in results] == recs
        assert sleep.call_count == 2
        sleep.assert_called_with(2.5)

    def test_no_delay_after_last(self, fake_client_cls, redshift_catalog, make_recommendation):
        client = fake_client_cls(pages=redshift_catalog)
        sleep = MagicMock()

        BatchPurchaseDriver(client.executor, sleep=sleep).purchase_all([make_recommendation()], delay=5)
        sleep.assert_not_called()

    def test_zero_delay_never_sleeps(self, fake_client_cls, redshift_catalog, make_recommendation):
        client = fake_client_cls(pages=redshift_catalog)
        sleep = MagicMock()

        results = BatchPurchaseDriver(client.executor, sleep=sleep).purchase_all(
            [make_recommendation(), make_recommendation()], delay=0,
        )
        assert len(results) == 2
        sleep.assert_not_called()

    def test_empty_batch(self, fake_client_cls):
        assert BatchPurchaseDriver(fake_client_cls().executor).purchase_all([]) == []

    def test_cancel_mid_batch(self, fake_client_cls, redshift_catalog, make_recommendation):
        """Items after the cancellation point are reported without being attempted"""
        cancel_event = threading.Event()
        client = fake_client_cls(
            pages=redshift_catalog,
            on_submit=lambda offering, quantity, rec: cancel_event.set(),
        )
        recs = [make_recommendation(), make_recommendation(), make_recommendation()]

        results = client.batch_purchase(recs, delay=0, cancel_event=cancel_event)

        assert len(results) == 3
        assert results[0].success
        assert [r.message for r in results[1:]] == [UNATTEMPTED_MESSAGE, UNATTEMPTED_MESSAGE]
        assert [r.recommendation for r in results] == recs
        assert len(client.purchases) == 1

    def test_cancel_during_delay(self, fake_client_cls, redshift_catalog, make_recommendation):
        """The wait between purchases ends as soon as the event is set"""
        cancel_event = MagicMock()
        cancel_event.is_set.return_value = False
        cancel_event.wait.return_value = True
        client = fake_client_cls(pages=redshift_catalog)

        results = client.batch_purchase([make_recommendation(), make_recommendation()], delay=30,
                                        cancel_event=cancel_event)

        cancel_event.wait.assert_called_once_with(30)
        assert results[0].success
        assert results[1].message == UNATTEMPTED_MESSAGE

    def test_cancelled_before_start(self, fake_client_cls, redshift_catalog, make_recommendation):
        cancel_event = threading.Event()
        cancel_event.set()
        client = fake_client_cls(pages=redshift_catalog)

        results = client.batch_purchase([make_recommendation()] * 2, cancel_event=cancel_event)

        assert [r.message for r in results] == [UNATTEMPTED_MESSAGE] * 2
        assert client.page_requests == []


class TestSummary:
    """Test batch summaries"""

    def test_summarize(self, make_recommendation):
        rec = make_recommendation(service=ServiceType.COMPUTE)
        results = [
            PurchaseResult.succeeded(rec, "a", "o", 100.0, "ok"),
            PurchaseResult.succeeded(rec, "b", "o", 50.5, "ok"),
            PurchaseResult.failed(rec, "nope"),
        ]
        summary = summarize(results)

        assert summary.total == 3
        assert summary.successful == 2
        assert summary.failed == 1
        assert summary.total_cost == 150.5
        assert round(summary.success_rate, 1) == 66.7

    def test_empty_summary(self):
        assert summarize([]).success_rate == 0.0
