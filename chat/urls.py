from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views.conversation_views import ConversationViewSet

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
]
