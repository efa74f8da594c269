from django.db import transaction
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .models import Video
from .notifications import recent_notifications
from .serializers import (
    NotificationSerializer,
    TranscodingStatusSerializer,
    VideoFromKeyRequestSerializer,
)
from .tasks import enqueue_transcode


class CreateVideoFromKeyView(views.APIView):
    """
    Creates a Video for a source already uploaded to MinIO/S3 by key and
    queues its transcode once the row is committed.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = VideoFromKeyRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        with transaction.atomic():
            video = Video.objects.create(
                title=ser.validated_data["title"],
                owner_id=ser.validated_data["owner_id"],
                source_key=ser.validated_data["key"],
            )
            # The worker must be able to load the row it is handed
            transaction.on_commit(lambda: enqueue_transcode(video))

        data = TranscodingStatusSerializer(video).data
        return Response(data, status=status.HTTP_202_ACCEPTED)


class TranscodingStatusView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, video_id):
        try:
            video = Video.objects.prefetch_related("quality_variants").get(pk=video_id)
        except Video.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)

        return Response(TranscodingStatusSerializer(video).data)


class UserNotificationsView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, owner_id):
        notifications = recent_notifications(owner_id)
        return Response(NotificationSerializer(notifications, many=True).data)
