from django.contrib import admin

from .models import Conversation, Message


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "seller", "buyer", "read_by_seller", "read_by_buyer", "updated_at")
    list_filter = ("read_by_seller", "read_by_buyer", "updated_at")
    search_fields = ("seller__username", "seller__email", "buyer__username", "buyer__email")
    readonly_fields = ("id", "seller", "buyer", "last_message", "created_at", "updated_at")


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "conversation", "author", "created_at")
    list_filter = ("created_at",)
    search_fields = ("author__username", "author__email", "content")
    readonly_fields = ("id", "conversation", "author", "content", "created_at")

    def has_change_permission(self, request, obj=None):
        # Messages are immutable
        return False
