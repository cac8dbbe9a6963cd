import threading
from unittest.mock import patch

import pytest
from django.db import connection, connections
from django.test import TestCase, TransactionTestCase

from infrastructure.payments import MockPaymentProvider
from marketplace.catalog.domain.services.review_service import ReviewService
from marketplace.models import Delivery, Order
from marketplace.ordering.domain.services.fulfillment_service import FulfillmentService
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.tests.factories import DeliveryFactory, GigFactory, OrderFactory, SellerFactory, UserFactory
from utils.service_base import AlreadyAcceptedError, DuplicateReviewError, InvalidTransitionError, ServiceError

# SQLite serializes writers on the whole file, which hides the races these tests target
requires_row_locks = pytest.mark.skipif(
    connection.vendor not in ("postgresql", "mysql"), reason="needs a database with row-level locking"
)


def run_concurrently(funcs):
    """Run each callable on its own thread and connection; return results or raised ServiceErrors."""
    barrier = threading.Barrier(len(funcs))
    results = [None] * len(funcs)

    def worker(index, func):
        barrier.wait()
        try:
            results[index] = func()
        except ServiceError as e:
            results[index] = e
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(i, f)) for i, f in enumerate(funcs)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


@requires_row_locks
class ConcurrentWritesTest(TransactionTestCase):
    def test_parallel_reviews_keep_aggregate_exact(self):
        gig = GigFactory()
        users = [UserFactory() for _ in range(10)]
        service = ReviewService()

        stars = [1, 2, 3, 4, 5] * 2
        run_concurrently([lambda u=u, s=s: service.create_review(u, gig.id, s) for u, s in zip(users, stars)])

        gig.refresh_from_db()
        self.assertEqual((gig.total_stars, gig.star_number), (30, 10))
        self.assertEqual((gig.total_stars, gig.star_number), service.rescan(gig))

    def test_parallel_duplicate_reviews(self):
        gig = GigFactory()
        user = UserFactory()
        service = ReviewService()

        results = run_concurrently([lambda: service.create_review(user, gig.id, 5) for _ in range(4)])

        self.assertEqual(sum(1 for r in results if not isinstance(r, ServiceError)), 1)
        gig.refresh_from_db()
        self.assertEqual((gig.total_stars, gig.star_number), (5, 1))

    def test_parallel_captures_complete_once(self):
        order = OrderFactory()
        service = OrderService(payment_provider=object())

        results = run_concurrently([lambda: service.confirm_capture(order.payment_intent_ref) for _ in range(5)])

        self.assertEqual(results.count(True), 1)
        self.assertTrue(Order.objects.get(pk=order.pk).is_completed)

    def test_acceptance_races_cancellation(self):
        order = OrderFactory()
        delivery = DeliveryFactory(order=order)
        service = FulfillmentService()

        run_concurrently(
            [
                lambda: service.accept_delivery(delivery.id, order.buyer),
                lambda: service.update_status(order.id, order.seller, Order.CANCELLED),
            ]
        )

        order.refresh_from_db()
        accepted = Delivery.objects.get(pk=delivery.pk).is_accepted
        self.assertIn(order.fulfillment_status, (Order.COMPLETED, Order.CANCELLED))
        self.assertEqual(accepted, order.fulfillment_status == Order.COMPLETED)


def once(competing):
    """Wrap ``competing`` so it runs on the first call only."""
    pending = [competing]

    def run(*args, **kwargs):
        if pending:
            pending.pop()()

    return run


class InterleavedFulfillmentTest(TestCase):
    """A competing write lands between the service's read and its guarded update."""

    def setUp(self):
        self.service = FulfillmentService()
        self.seller = SellerFactory()
        self.buyer = UserFactory()
        self.order = OrderFactory(gig=GigFactory(owner=self.seller), buyer=self.buyer, is_completed=True)
        self.delivery = DeliveryFactory(order=self.order)
        Order.objects.filter(pk=self.order.pk).update(fulfillment_status=Order.IN_PROGRESS)

    def _after_order_read(self, competing):
        read_order = FulfillmentService._get_order
        inject = once(competing)

        def get_order(service, order_id, user):
            order = read_order(service, order_id, user)
            inject()
            return order

        return patch.object(FulfillmentService, "_get_order", get_order)

    def test_cancellation_loses_to_acceptance(self):
        def accept():
            FulfillmentService().accept_delivery(self.delivery.id, self.buyer)

        with self._after_order_read(accept):
            with self.assertRaises(InvalidTransitionError):
                self.service.update_status(self.order.id, self.buyer, Order.CANCELLED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.fulfillment_status, Order.COMPLETED)
        self.assertIsNone(self.order.cancelled_at)
        self.assertIsNone(self.order.cancelled_by)
        self.assertTrue(Delivery.objects.get(pk=self.delivery.pk).is_accepted)

    def test_delivered_loses_to_cancellation(self):
        def cancel():
            self.service.update_status(self.order.id, self.buyer, Order.CANCELLED)

        with self._after_order_read(cancel):
            with self.assertRaises(InvalidTransitionError):
                self.service.update_status(self.order.id, self.seller, Order.DELIVERED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.fulfillment_status, Order.CANCELLED)
        self.assertEqual(self.order.cancelled_by, self.buyer)

    def test_same_target_raced_is_not_an_error(self):
        def cancel():
            self.service.update_status(self.order.id, self.seller, Order.CANCELLED)

        with self._after_order_read(cancel):
            order = self.service.update_status(self.order.id, self.buyer, Order.CANCELLED)

        self.assertEqual(order.fulfillment_status, Order.CANCELLED)
        # The first writer keeps the cancellation record
        self.assertEqual(order.cancelled_by, self.seller)

    def test_acceptance_rolled_back_when_cancelled_underneath(self):
        def cancel():
            Order.objects.filter(pk=self.order.pk).update(fulfillment_status=Order.CANCELLED)

        with patch.object(FulfillmentService, "_require_payment", side_effect=once(cancel)):
            with self.assertRaises(InvalidTransitionError):
                self.service.accept_delivery(self.delivery.id, self.buyer)

        self.assertFalse(Delivery.objects.get(pk=self.delivery.pk).is_accepted)

    def test_double_acceptance_has_one_winner(self):
        def accept():
            Delivery.objects.filter(pk=self.delivery.pk).update(is_accepted=True)

        with patch.object(FulfillmentService, "_require_payment", side_effect=once(accept)):
            with self.assertRaises(AlreadyAcceptedError):
                self.service.accept_delivery(self.delivery.id, self.buyer)


class InterleavedReviewTest(TestCase):
    def setUp(self):
        self.service = ReviewService()
        self.gig = GigFactory()
        self.author = UserFactory()
        self.other = UserFactory()
        self.insert_review = ReviewService._insert_review

    def _before_insert(self, user, star):
        insert_review = self.insert_review
        inject = once(lambda: insert_review(self.service, self.gig, user, star, ""))

        def interleaved(service, gig, user, star, comment):
            inject()
            return insert_review(service, gig, user, star, comment)

        return patch.object(ReviewService, "_insert_review", interleaved)

    def test_aggregate_keeps_both_stars(self):
        with self._before_insert(self.other, 4):
            self.service.create_review(self.author, self.gig.id, 5)

        self.gig.refresh_from_db()
        self.assertEqual((self.gig.total_stars, self.gig.star_number), (9, 2))
        self.assertEqual((self.gig.total_stars, self.gig.star_number), self.service.rescan(self.gig))

    def test_duplicate_lost_race_is_rejected(self):
        with self._before_insert(self.author, 2):
            with self.assertRaises(DuplicateReviewError):
                self.service.create_review(self.author, self.gig.id, 5)

        self.gig.refresh_from_db()
        self.assertEqual((self.gig.total_stars, self.gig.star_number), (2, 1))


class InterleavedCaptureTest(TestCase):
    def test_webhook_lands_during_client_confirmation(self):
        provider = MockPaymentProvider()
        service = OrderService(payment_provider=provider)
        buyer = UserFactory()
        order = service.create_order(GigFactory().id, buyer).order
        provider.mark_succeeded(order.payment_intent_ref)

        retrieve = provider.retrieve_payment_intent
        webhook_completed_at = []

        def retrieve_after_webhook(intent_id):
            self.assertTrue(service.confirm_capture(intent_id, source="webhook"))
            webhook_completed_at.append(Order.objects.get(pk=order.pk).completed_at)
            return retrieve(intent_id)

        with patch.object(provider, "retrieve_payment_intent", side_effect=retrieve_after_webhook):
            confirmed = service.confirm_from_client(order.payment_intent_ref, buyer)

        self.assertTrue(confirmed.is_completed)
        self.assertEqual(confirmed.completed_at, webhook_completed_at[0])
        self.assertFalse(service.confirm_capture(order.payment_intent_ref))
