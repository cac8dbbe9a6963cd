from django.contrib import admin

from .models import Delivery, Gig, Order, OrderStatusUpdate, Review


class ReviewInline(admin.TabularInline):
    model = Review
    extra = 0
    fields = ('user', 'star', 'comment', 'created_at')
    readonly_fields = ('user', 'star', 'comment', 'created_at')
    can_delete = False


@admin.register(Gig)
class GigAdmin(admin.ModelAdmin):
    list_display = ('title', 'owner', 'price', 'star_number', 'rating_display', 'created_at')
    search_fields = ('title', 'owner__username', 'owner__email')
    # The aggregate belongs to the review service
    readonly_fields = ('total_stars', 'star_number', 'created_at', 'updated_at')
    inlines = [ReviewInline]

    fieldsets = (
        (None, {
            'fields': ('owner', 'title', 'description', 'cover', 'price')
        }),
        ('Rating', {
            'fields': ('total_stars', 'star_number')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def rating_display(self, obj):
        rating = obj.rating
        return "Unrated" if rating is None else f"{rating:.2f}"
    rating_display.short_description = "Rating"


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('gig', 'user', 'star', 'created_at')
    list_filter = ('star', 'created_at')
    search_fields = ('gig__title', 'user__username', 'comment')
    readonly_fields = ('gig', 'user', 'star', 'comment', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # Deleting here would bypass the aggregate update
        return False


class DeliveryInline(admin.TabularInline):
    model = Delivery
    extra = 0
    fields = ('artifact_ref', 'message', 'is_accepted', 'accepted_at', 'created_at')
    readonly_fields = fields
    can_delete = False


class OrderStatusUpdateInline(admin.TabularInline):
    model = OrderStatusUpdate
    extra = 0
    fields = ('title', 'body', 'author', 'created_at')
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('short_id', 'title', 'buyer', 'seller', 'price', 'is_completed', 'fulfillment_status', 'created_at')
    list_filter = ('is_completed', 'fulfillment_status', 'created_at')
    search_fields = ('id', 'title', 'payment_intent_ref', 'buyer__username', 'seller__username')
    date_hierarchy = 'created_at'
    inlines = [DeliveryInline, OrderStatusUpdateInline]

    fieldsets = (
        ('Purchase', {
            'fields': ('gig', 'title', 'cover', 'price', 'buyer', 'seller')
        }),
        ('Payment', {
            'fields': ('payment_intent_ref', 'is_completed', 'completed_at')
        }),
        ('Fulfillment', {
            'fields': ('fulfillment_status', 'fulfilled_at', 'cancelled_by', 'cancelled_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def short_id(self, obj):
        return str(obj.id)[:8]
    short_id.short_description = "Order"
