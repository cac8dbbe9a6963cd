import uuid

from django.conf import settings
from django.db import models

from utils.service_base import ValidationError


class Conversation(models.Model):
    """
    One thread between exactly one seller and one buyer.

    The (seller, buyer) pair is the key; ``id`` is the seller id followed by
    the buyer id, so either party derives the same handle. Both ids are
    fixed-length UUIDs, so the concatenation cannot be ambiguous.
    """

    id = models.CharField(primary_key=True, max_length=72, editable=False)
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="conversations_as_seller"
    )
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="conversations_as_buyer")

    # Independent unread flags, one per side
    read_by_seller = models.BooleanField(default=False)
    read_by_buyer = models.BooleanField(default=False)

    # Denormalized preview of the newest message
    last_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(fields=["seller", "buyer"], name="unique_conversation_pair"),
        ]
        indexes = [
            models.Index(fields=["seller", "-updated_at"], name="conv_seller_updated_idx"),
            models.Index(fields=["buyer", "-updated_at"], name="conv_buyer_updated_idx"),
        ]

    @staticmethod
    def make_id(seller_id, buyer_id) -> str:
        return f"{seller_id}{buyer_id}"

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = self.make_id(self.seller_id, self.buyer_id)
        super().save(*args, **kwargs)

    def is_party(self, user) -> bool:
        return user.pk in (self.seller_id, self.buyer_id)

    def __str__(self):
        return f"Conversation {self.seller_id} / {self.buyer_id}"


class Message(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name="messages")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="chat_messages")
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["conversation", "created_at"], name="message_conv_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Messages cannot be edited")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Message {self.id} from {self.author_id}"
