from django.contrib.auth import get_user_model
from rest_framework import serializers

from chat.domain.models import Conversation, Message


User = get_user_model()


class ParticipantSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username")
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    author_username = serializers.ReadOnlyField(source="author.username")

    class Meta:
        model = Message
        fields = ("id", "conversation", "author", "author_username", "content", "created_at")
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    seller = ParticipantSerializer(read_only=True)
    buyer = ParticipantSerializer(read_only=True)
    is_read = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = (
            "id",
            "seller",
            "buyer",
            "read_by_seller",
            "read_by_buyer",
            "is_read",
            "last_message",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_is_read(self, obj) -> bool:
        """The requesting user's own flag."""
        request = self.context.get("request")
        if request is None or not request.user.is_authenticated:
            return False
        return obj.read_by_seller if obj.seller_id == request.user.pk else obj.read_by_buyer


class StartConversationSerializer(serializers.Serializer):
    counterparty_id = serializers.UUIDField(help_text="The other party")
    as_seller = serializers.BooleanField(
        required=False, allow_null=True, default=None, help_text="Whether the caller acts as the seller"
    )


class MarkReadSerializer(serializers.Serializer):
    as_seller = serializers.BooleanField(required=False, allow_null=True, default=None)


class PostMessageSerializer(serializers.Serializer):
    content = serializers.CharField()
