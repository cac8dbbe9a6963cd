from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .catalog.api.views.gig_views import GigViewSet
from .catalog.api.views.review_views import ReviewViewSet
from .ordering.api.views.delivery_views import DeliveryViewSet
from .ordering.api.views.order_views import OrderViewSet
from .ordering.api.views.webhook_views import payment_webhook

# Create the main router
router = DefaultRouter()
router.register(r"gigs", GigViewSet, basename="gig")
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"deliveries", DeliveryViewSet, basename="delivery")
router.register(r"reviews", ReviewViewSet, basename="review")

app_name = "marketplace"

urlpatterns = [
    # Processor callbacks (unauthenticated, signature-verified)
    path("payments/webhook/", payment_webhook, name="payment-webhook"),
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.marketplace_prometheus_metrics, name="marketplace-metrics"),
    # Main API routes
    path("", include(router.urls)),
]
