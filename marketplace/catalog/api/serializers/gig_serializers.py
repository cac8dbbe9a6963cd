from rest_framework import serializers

from marketplace.catalog.api.serializers.user_serializers import UserSerializer
from marketplace.catalog.domain.models.catalog import Gig


class GigSerializer(serializers.ModelSerializer):
    owner = UserSerializer(read_only=True)
    rating = serializers.FloatField(read_only=True, allow_null=True, help_text="Average stars, null when unrated")

    class Meta:
        model = Gig
        fields = [
            "id",
            "owner",
            "title",
            "description",
            "cover",
            "price",
            "total_stars",
            "star_number",
            "rating",
            "created_at",
        ]
        read_only_fields = fields
