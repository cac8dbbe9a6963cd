"""
ConversationService - Conversation Synchronizer

Keeps one thread per (seller, buyer) pair and two independent read flags.
Posting a message marks the author's side read and the other side unread;
marking read only ever touches the caller's own flag.
"""

import logging
from typing import List, Optional, Tuple

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q

from chat.domain.models import Conversation, Message
from chat.infra.observability.metrics import conversations_total, messages_posted_total
from utils.service_base import BaseService, ForbiddenError, NotFoundError, ValidationError

User = get_user_model()
logger = logging.getLogger(__name__)


class ConversationService(BaseService):
    def _get_conversation(self, conversation_id, user: User) -> Conversation:
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if not conversation.is_party(user):
            raise ForbiddenError("You are not part of this conversation")
        return conversation

    @BaseService.log_performance
    def get_or_create_conversation(
        self, initiator: User, initiator_is_seller: bool, counterparty_id
    ) -> Tuple[Conversation, bool]:
        """
        Return the pair's conversation, creating it on first contact.

        On creation the initiator's flag starts read and the counterparty's
        unread; an existing conversation is returned untouched.

        Raises:
            NotFoundError: counterparty does not exist
            ValidationError: initiator and counterparty are the same user
        """
        counterparty = User.objects.filter(pk=counterparty_id).first()
        if counterparty is None:
            raise NotFoundError("User not found")
        if counterparty.pk == initiator.pk:
            raise ValidationError("You cannot start a conversation with yourself")

        if initiator_is_seller:
            seller, buyer = initiator, counterparty
        else:
            seller, buyer = counterparty, initiator

        conversation = Conversation.objects.filter(seller=seller, buyer=buyer).first()
        if conversation is not None:
            conversations_total.labels(outcome="existing").inc()
            return conversation, False

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    id=Conversation.make_id(seller.pk, buyer.pk),
                    seller=seller,
                    buyer=buyer,
                    read_by_seller=bool(initiator_is_seller),
                    read_by_buyer=not initiator_is_seller,
                )
        except IntegrityError:
            # The other party created it between our lookup and insert
            conversations_total.labels(outcome="existing").inc()
            return Conversation.objects.get(seller=seller, buyer=buyer), False

        conversations_total.labels(outcome="created").inc()
        self.logger.info(f"Conversation {conversation.id} created by {initiator.pk}")
        return conversation, True

    @BaseService.log_performance
    def post_message(self, conversation_id, author: User, content: str) -> Message:
        """Append a message and flip the read flags in one transaction."""
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")

        with transaction.atomic():
            conversation = Conversation.objects.select_for_update().filter(pk=conversation_id).first()
            if conversation is None:
                raise NotFoundError("Conversation not found")
            if not conversation.is_party(author):
                raise ForbiddenError("You are not part of this conversation")

            message = Message.objects.create(conversation=conversation, author=author, content=content)

            author_is_seller = conversation.seller_id == author.pk
            conversation.last_message = content
            conversation.read_by_seller = author_is_seller
            conversation.read_by_buyer = not author_is_seller
            conversation.save(update_fields=["last_message", "read_by_seller", "read_by_buyer", "updated_at"])

        messages_posted_total.labels(author_role="seller" if author_is_seller else "buyer").inc()
        return message

    @BaseService.log_performance
    def mark_read(self, conversation_id, user: User, user_is_seller: Optional[bool] = None) -> Conversation:
        """
        Set the caller's own read flag.

        ``user_is_seller`` defaults to the side the caller occupies in the
        conversation; claiming the other side is refused.
        """
        conversation = self._get_conversation(conversation_id, user)

        is_seller_side = conversation.seller_id == user.pk
        if user_is_seller is None:
            user_is_seller = is_seller_side
        elif user_is_seller != is_seller_side:
            raise ForbiddenError("You can only mark your own side as read")

        flag = "read_by_seller" if user_is_seller else "read_by_buyer"
        # Single-column update, the counterparty's flag is never written
        Conversation.objects.filter(pk=conversation.pk).update(**{flag: True})
        conversation.refresh_from_db()
        return conversation

    @BaseService.log_performance
    def list_conversations(self, user: User, is_seller: Optional[bool] = None) -> List[Conversation]:
        """Conversations of the caller, newest activity first."""
        if is_seller is None:
            conversations = Conversation.objects.filter(Q(seller=user) | Q(buyer=user))
        elif is_seller:
            conversations = Conversation.objects.filter(seller=user)
        else:
            conversations = Conversation.objects.filter(buyer=user)
        return list(conversations.select_related("seller", "buyer").order_by("-updated_at"))

    @BaseService.log_performance
    def get_conversation(self, conversation_id, user: User) -> Conversation:
        return self._get_conversation(conversation_id, user)

    @BaseService.log_performance
    def list_messages(self, conversation_id, user: User) -> List[Message]:
        """Messages oldest first."""
        conversation = self._get_conversation(conversation_id, user)
        return list(conversation.messages.select_related("author").order_by("created_at"))
