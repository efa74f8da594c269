from django.urls import path
from .views import CreateVideoFromKeyView, TranscodingStatusView, UserNotificationsView

urlpatterns = [
    path("videos/from-key/", CreateVideoFromKeyView.as_view(), name="videos_from_key"),
    path("videos/<uuid:video_id>/transcoding/", TranscodingStatusView.as_view(), name="transcoding_status"),
    path("users/<str:owner_id>/notifications/", UserNotificationsView.as_view(), name="user_notifications"),
]
