"""
ReviewService - Review Aggregator

Owns gig reviews and the gig's running rating aggregate (``total_stars``,
``star_number``). The review row and the aggregate change in the same
transaction, and the aggregate is always adjusted with ``F()`` expressions so
the database serializes concurrent writers on the gig row.
"""

import logging
from typing import Iterator, List, Tuple

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Sum
from django.db.models.functions import Coalesce

from marketplace.catalog.domain.models.catalog import Gig
from marketplace.catalog.domain.models.interaction import Review
from marketplace.infra.observability.metrics import reviews_total
from utils.service_base import BaseService, DuplicateReviewError, ForbiddenError, NotFoundError, ValidationError
from utils.transaction_utils import retry_on_deadlock


User = get_user_model()
logger = logging.getLogger(__name__)

MIN_STAR = 1
MAX_STAR = 5


class ReviewService(BaseService):
    """
    Service for gig reviews.

    Responsibilities:
    - Create review (one per user and gig, never by the gig owner)
    - Delete review (author only, exact reversal of its contribution)
    - Rescan aggregates to detect and repair drift
    """

    @BaseService.log_performance
    def create_review(self, user: User, gig_id, star: int, comment: str = "") -> Review:
        """
        Create a review and fold its star into the gig aggregate.

        Raises:
            ValidationError: star outside 1..5, or the caller owns the gig
            NotFoundError: gig does not exist
            DuplicateReviewError: the caller already reviewed this gig
        """
        if isinstance(star, bool) or not isinstance(star, int) or not MIN_STAR <= star <= MAX_STAR:
            raise ValidationError(f"Star rating must be an integer between {MIN_STAR} and {MAX_STAR}")

        gig = Gig.objects.filter(pk=gig_id).first()
        if gig is None:
            raise NotFoundError("Gig not found")
        if gig.owner_id == user.pk:
            raise ValidationError("You cannot review your own gig")

        if Review.objects.filter(gig=gig, user=user).exists():
            reviews_total.labels(event="duplicate").inc()
            raise DuplicateReviewError()

        try:
            review = self._insert_review(gig, user, star, comment or "")
        except IntegrityError as e:
            # Lost the race against a concurrent insert for the same pair
            reviews_total.labels(event="duplicate").inc()
            raise DuplicateReviewError() from e

        reviews_total.labels(event="created").inc()
        self.logger.info(f"Created review {review.id} for gig {gig.id} by user {user.pk}")
        return review

    @retry_on_deadlock(max_retries=3)
    def _insert_review(self, gig: Gig, user: User, star: int, comment: str) -> Review:
        with transaction.atomic():
            review = Review.objects.create(gig=gig, user=user, star=star, comment=comment)
            Gig.objects.filter(pk=gig.pk).update(
                total_stars=F("total_stars") + star,
                star_number=F("star_number") + 1,
            )
        return review

    @BaseService.log_performance
    def delete_review(self, review_id, user: User) -> None:
        """
        Delete a review and subtract exactly its star from the gig aggregate.

        Raises:
            NotFoundError: review does not exist
            ForbiddenError: caller is not the author
        """
        self._remove_review(review_id, user)
        reviews_total.labels(event="deleted").inc()

    @retry_on_deadlock(max_retries=3)
    def _remove_review(self, review_id, user: User) -> None:
        with transaction.atomic():
            review = Review.objects.select_for_update().filter(pk=review_id).first()
            if review is None:
                raise NotFoundError("Review not found")
            if review.user_id != user.pk:
                raise ForbiddenError("You can only delete your own reviews")

            deleted, _ = Review.objects.filter(pk=review.pk).delete()
            if not deleted:
                raise NotFoundError("Review not found")

            Gig.objects.filter(pk=review.gig_id).update(
                total_stars=F("total_stars") - review.star,
                star_number=F("star_number") - 1,
            )

        self.logger.info(f"Deleted review {review.id} of gig {review.gig_id}")

    @BaseService.log_performance
    def get_reviews(self, gig_id) -> List[Review]:
        """Reviews of a gig, newest first."""
        if not Gig.objects.filter(pk=gig_id).exists():
            raise NotFoundError("Gig not found")
        return list(Review.objects.filter(gig_id=gig_id).select_related("user").order_by("-created_at"))

    def rescan(self, gig: Gig) -> Tuple[int, int]:
        """Recompute (total_stars, star_number) from the surviving reviews."""
        totals = Review.objects.filter(gig=gig).aggregate(total=Coalesce(Sum("star"), 0), count=Count("id"))
        return totals["total"], totals["count"]

    def find_drift(self) -> Iterator[Tuple[Gig, int, int]]:
        """Yield gigs whose stored aggregate differs from a rescan, with the expected values."""
        for gig in Gig.objects.order_by("created_at").iterator():
            total, count = self.rescan(gig)
            if (gig.total_stars, gig.star_number) != (total, count):
                yield gig, total, count

    @BaseService.log_performance
    def repair_aggregate(self, gig: Gig) -> Gig:
        """Overwrite the stored aggregate with a rescan, holding the gig row lock."""
        with transaction.atomic():
            locked = Gig.objects.select_for_update().get(pk=gig.pk)
            locked.total_stars, locked.star_number = self.rescan(locked)
            locked.save(update_fields=["total_stars", "star_number", "updated_at"])

        self.logger.warning(f"Repaired rating aggregate of gig {gig.id}")
        return locked
