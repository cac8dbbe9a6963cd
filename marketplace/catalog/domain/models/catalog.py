import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models

User = get_user_model()


class Gig(models.Model):
    """
    A sellable listing.

    ``total_stars`` and ``star_number`` are the running rating aggregate; only
    the review service writes them, always with ``F()`` arithmetic.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="gigs")

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    cover = models.URLField(max_length=2000, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])

    # Rating aggregate
    total_stars = models.PositiveIntegerField(default=0)
    star_number = models.PositiveIntegerField(default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="gig_owner_created_idx"),
        ]

    @property
    def rating(self):
        """Average star rating, or None while the gig is unrated."""
        if not self.star_number:
            return None
        return self.total_stars / self.star_number

    def __str__(self):
        return self.title
