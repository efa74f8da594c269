from rest_framework import serializers
from .models import Notification, QualityVariant, Video
from .utils import guess_kind


class QualityVariantSerializer(serializers.ModelSerializer):
    class Meta:
        model = QualityVariant
        fields = ["quality", "url", "size", "bitrate"]


class TranscodingStatusSerializer(serializers.ModelSerializer):
    """Read-only status projection polled by the rest of the platform."""
    quality_variants = serializers.SerializerMethodField()

    class Meta:
        model = Video
        fields = [
            "id",
            "title",
            "transcoding_status",
            "transcoding_progress",
            "transcoding_error",
            "manifest_url",
            "quality_variants",
        ]

    def get_quality_variants(self, obj):
        # Same ascending order as the manifest
        variants = sorted(obj.quality_variants.all(), key=lambda v: v.bitrate)
        return QualityVariantSerializer(variants, many=True).data


class VideoFromKeyRequestSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    key = serializers.CharField(max_length=512)
    owner_id = serializers.CharField(max_length=64)

    def validate_key(self, value):
        if guess_kind(value) != "video":
            raise serializers.ValidationError("Unsupported file type; expected a video.")
        return value


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "link", "is_read", "created_at"]
