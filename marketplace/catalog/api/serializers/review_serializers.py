from rest_framework import serializers

from marketplace.catalog.api.serializers.user_serializers import UserSerializer
from marketplace.catalog.domain.models.interaction import Review


class ReviewSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = Review
        fields = ["id", "gig", "user", "star", "comment", "created_at"]
        read_only_fields = fields


class CreateReviewRequestSerializer(serializers.Serializer):
    gig_id = serializers.UUIDField(help_text="Gig being reviewed")
    # Range checked by ReviewService
    star = serializers.IntegerField(help_text="Rating from 1 to 5")
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewListQuerySerializer(serializers.Serializer):
    gig_id = serializers.UUIDField(help_text="Gig whose reviews to list")
