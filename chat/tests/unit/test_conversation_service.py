from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from chat.domain.models import Conversation, Message
from chat.domain.services.conversation_service import ConversationService
from marketplace.tests.factories import SellerFactory, UserFactory
from utils.service_base import ForbiddenError, NotFoundError, ValidationError


class ConversationServiceTests(TestCase):
    def setUp(self):
        self.seller = SellerFactory()
        self.buyer = UserFactory()
        self.outsider = UserFactory()
        self.service = ConversationService()

    def test_id_is_seller_then_buyer_whoever_starts(self):
        conversation, created = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)

        self.assertTrue(created)
        self.assertEqual(conversation.id, f"{self.seller.id}{self.buyer.id}")
        self.assertEqual(conversation.seller, self.seller)
        self.assertEqual(conversation.buyer, self.buyer)

        again, created = self.service.get_or_create_conversation(self.seller, True, self.buyer.id)
        self.assertFalse(created)
        self.assertEqual(again.id, conversation.id)
        self.assertEqual(Conversation.objects.count(), 1)

    def test_initial_flags_follow_initiator(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        self.assertTrue(conversation.read_by_buyer)
        self.assertFalse(conversation.read_by_seller)

        other_buyer = UserFactory()
        conversation, _ = self.service.get_or_create_conversation(self.seller, True, other_buyer.id)
        self.assertTrue(conversation.read_by_seller)
        self.assertFalse(conversation.read_by_buyer)

    def test_existing_conversation_untouched(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        self.service.post_message(conversation.id, self.buyer, "Hello")

        again, created = self.service.get_or_create_conversation(self.seller, True, self.buyer.id)
        self.assertFalse(created)
        self.assertFalse(again.read_by_seller)
        self.assertEqual(again.last_message, "Hello")

    def test_same_pair_in_both_roles_is_two_conversations(self):
        first, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        second, _ = self.service.get_or_create_conversation(self.buyer, True, self.seller.id)

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(second.seller, self.buyer)

    def test_conversation_with_self_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.get_or_create_conversation(self.buyer, False, self.buyer.id)

    def test_unknown_counterparty(self):
        with self.assertRaises(NotFoundError):
            self.service.get_or_create_conversation(self.buyer, False, "00000000-0000-0000-0000-000000000000")

    def test_post_message_flips_flags(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)

        self.service.post_message(conversation.id, self.seller, "Thanks for reaching out")
        conversation.refresh_from_db()
        self.assertTrue(conversation.read_by_seller)
        self.assertFalse(conversation.read_by_buyer)
        self.assertEqual(conversation.last_message, "Thanks for reaching out")

        self.service.post_message(conversation.id, self.buyer, "Great")
        conversation.refresh_from_db()
        self.assertFalse(conversation.read_by_seller)
        self.assertTrue(conversation.read_by_buyer)

    def test_post_message_validation(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)

        with self.assertRaises(ValidationError):
            self.service.post_message(conversation.id, self.buyer, "   ")
        with self.assertRaises(ForbiddenError):
            self.service.post_message(conversation.id, self.outsider, "Hi")
        with self.assertRaises(NotFoundError):
            self.service.post_message("missing", self.buyer, "Hi")
        self.assertEqual(Message.objects.count(), 0)

    def test_mark_read_touches_only_own_flag(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        self.service.post_message(conversation.id, self.buyer, "Hello")

        conversation = self.service.mark_read(conversation.id, self.seller)
        self.assertTrue(conversation.read_by_seller)
        self.assertTrue(conversation.read_by_buyer)

        self.service.post_message(conversation.id, self.seller, "Hi back")
        conversation = self.service.mark_read(conversation.id, self.seller)
        self.assertTrue(conversation.read_by_seller)
        self.assertFalse(conversation.read_by_buyer)

    def test_mark_read_wrong_side(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)

        with self.assertRaises(ForbiddenError):
            self.service.mark_read(conversation.id, self.buyer, user_is_seller=True)
        with self.assertRaises(ForbiddenError):
            self.service.mark_read(conversation.id, self.outsider)

    def test_list_conversations_by_side(self):
        as_buyer, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        as_seller, _ = self.service.get_or_create_conversation(self.buyer, True, self.outsider.id)
        Conversation.objects.filter(pk=as_buyer.pk).update(updated_at=timezone.now() - timedelta(hours=1))

        self.assertEqual([c.id for c in self.service.list_conversations(self.buyer)], [as_seller.id, as_buyer.id])
        self.assertEqual([c.id for c in self.service.list_conversations(self.buyer, is_seller=False)], [as_buyer.id])
        self.assertEqual([c.id for c in self.service.list_conversations(self.buyer, is_seller=True)], [as_seller.id])

    def test_list_messages_oldest_first(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        first = self.service.post_message(conversation.id, self.buyer, "one")
        second = self.service.post_message(conversation.id, self.seller, "two")
        Message.objects.filter(pk=second.pk).update(created_at=timezone.now() + timedelta(seconds=1))

        messages = self.service.list_messages(conversation.id, self.seller)
        self.assertEqual([m.id for m in messages], [first.id, second.id])

        with self.assertRaises(ForbiddenError):
            self.service.list_messages(conversation.id, self.outsider)

    def test_messages_are_immutable(self):
        conversation, _ = self.service.get_or_create_conversation(self.buyer, False, self.seller.id)
        message = self.service.post_message(conversation.id, self.buyer, "original")

        message.content = "edited"
        with self.assertRaises(ValidationError):
            message.save()
        message.refresh_from_db()
        self.assertEqual(message.content, "original")
