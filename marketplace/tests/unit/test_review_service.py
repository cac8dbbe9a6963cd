import random
from unittest.mock import patch

import pytest
from django.db import IntegrityError
from django.test import TestCase

from marketplace.catalog.domain.services.review_service import ReviewService
from marketplace.models import Gig, Review
from marketplace.tests.factories import GigFactory, ReviewFactory, SellerFactory, UserFactory
from utils.service_base import DuplicateReviewError, ForbiddenError, NotFoundError, ValidationError


class ReviewServiceTests(TestCase):
    def setUp(self):
        self.service = ReviewService()
        self.owner = SellerFactory()
        self.gig = GigFactory(owner=self.owner)
        self.alice = UserFactory()
        self.bob = UserFactory()
        self.carol = UserFactory()

    def _aggregate(self):
        self.gig.refresh_from_db()
        return self.gig.total_stars, self.gig.star_number

    def test_rating_follows_creates_and_deletes(self):
        self.service.create_review(self.alice, self.gig.id, 4)
        self.service.create_review(self.bob, self.gig.id, 5)
        self.assertEqual(self._aggregate(), (9, 2))

        self.service.create_review(self.carol, self.gig.id, 5)
        self.assertEqual(self._aggregate(), (14, 3))

    def test_add_then_remove_restores_aggregate(self):
        ReviewFactory(gig=self.gig, user=self.alice, star=4)
        ReviewFactory(gig=self.gig, user=self.bob, star=5)
        Gig.objects.filter(pk=self.gig.pk).update(total_stars=10, star_number=2)

        review = self.service.create_review(self.carol, self.gig.id, 5)
        self.assertEqual(self._aggregate(), (15, 3))
        self.assertEqual(self.gig.rating, 5.0)

        self.service.delete_review(review.id, self.carol)
        self.assertEqual(self._aggregate(), (10, 2))
        self.assertFalse(Review.objects.filter(pk=review.pk).exists())

    def test_unrated_gig_has_no_rating(self):
        self.assertIsNone(self.gig.rating)

    def test_duplicate_review_leaves_aggregate_unchanged(self):
        self.service.create_review(self.alice, self.gig.id, 3)

        with self.assertRaises(DuplicateReviewError):
            self.service.create_review(self.alice, self.gig.id, 5)

        self.assertEqual(self._aggregate(), (3, 1))
        self.assertEqual(Review.objects.filter(gig=self.gig).count(), 1)

    def test_insert_race_maps_to_duplicate(self):
        with patch.object(ReviewService, "_insert_review", side_effect=IntegrityError("unique_gig_reviewer")):
            with self.assertRaises(DuplicateReviewError):
                self.service.create_review(self.alice, self.gig.id, 5)
        self.assertEqual(self._aggregate(), (0, 0))

    def test_owner_cannot_review(self):
        with self.assertRaises(ValidationError):
            self.service.create_review(self.owner, self.gig.id, 5)
        self.assertEqual(self._aggregate(), (0, 0))

    def test_star_range(self):
        for star in (0, 6, -1, 2.5, "4", True):
            with self.assertRaises(ValidationError):
                self.service.create_review(self.alice, self.gig.id, star)
        self.assertEqual(Review.objects.count(), 0)

    def test_unknown_gig(self):
        with self.assertRaises(NotFoundError):
            self.service.create_review(self.alice, "00000000-0000-0000-0000-000000000000", 5)

    def test_only_author_can_delete(self):
        review = self.service.create_review(self.alice, self.gig.id, 4)

        with self.assertRaises(ForbiddenError):
            self.service.delete_review(review.id, self.bob)
        with self.assertRaises(ForbiddenError):
            self.service.delete_review(review.id, self.owner)

        self.assertEqual(self._aggregate(), (4, 1))

    def test_delete_missing_review(self):
        with self.assertRaises(NotFoundError):
            self.service.delete_review("00000000-0000-0000-0000-000000000000", self.alice)

    def test_get_reviews_newest_first(self):
        first = self.service.create_review(self.alice, self.gig.id, 4)
        second = self.service.create_review(self.bob, self.gig.id, 2)
        Review.objects.filter(pk=first.pk).update(created_at=second.created_at.replace(year=2000))

        reviews = self.service.get_reviews(self.gig.id)
        self.assertEqual([r.id for r in reviews], [second.id, first.id])

    def test_random_interleavings_match_rescan(self):
        rng = random.Random(7)
        users = [UserFactory() for _ in range(8)]
        live = {}

        for _ in range(60):
            user = rng.choice(users)
            if user.pk in live and rng.random() < 0.5:
                self.service.delete_review(live.pop(user.pk).id, user)
            elif user.pk not in live:
                live[user.pk] = self.service.create_review(user, self.gig.id, rng.randint(1, 5))
            else:
                with self.assertRaises(DuplicateReviewError):
                    self.service.create_review(user, self.gig.id, rng.randint(1, 5))

            self.assertEqual(self._aggregate(), self.service.rescan(self.gig))

    def test_find_and_repair_drift(self):
        ReviewFactory(gig=self.gig, user=self.alice, star=4)
        ReviewFactory(gig=self.gig, user=self.bob, star=2)
        healthy = GigFactory()

        drift = list(self.service.find_drift())
        self.assertEqual([(g.id, total, count) for g, total, count in drift], [(self.gig.id, 6, 2)])

        self.service.repair_aggregate(self.gig)
        self.assertEqual(self._aggregate(), (6, 2))
        self.assertEqual(list(self.service.find_drift()), [])

        healthy.refresh_from_db()
        self.assertEqual((healthy.total_stars, healthy.star_number), (0, 0))


@pytest.mark.unit
class TestReviewServiceValidationUnit:
    def setup_method(self):
        self.service = ReviewService()

    @patch("marketplace.catalog.domain.services.review_service.Gig.objects.filter")
    def test_star_checked_before_any_query(self, mock_filter):
        with pytest.raises(ValidationError):
            self.service.create_review(object(), "gig-id", 9)

        mock_filter.assert_not_called()
