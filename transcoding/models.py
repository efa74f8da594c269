import uuid
from django.db import models


class Video(models.Model):
    class TranscodingStatus(models.TextChoices):
        PENDING = "PENDING"
        PROCESSING = "PROCESSING"
        COMPLETED = "COMPLETED"
        FAILED = "FAILED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    owner_id = models.CharField(max_length=64, db_index=True)
    source_key = models.CharField(max_length=512)        # S3 key of the uploaded original
    duration = models.PositiveIntegerField(null=True, blank=True)  # whole seconds

    transcoding_status = models.CharField(
        max_length=16, choices=TranscodingStatus.choices, default=TranscodingStatus.PENDING
    )
    transcoding_progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    transcoding_error = models.TextField(null=True, blank=True)
    manifest_url = models.CharField(max_length=1024, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.transcoding_status})"


class QualityVariant(models.Model):
    video = models.ForeignKey(Video, on_delete=models.CASCADE, related_name="quality_variants")
    quality = models.CharField(max_length=16)            # "360p", "720p", ...
    url = models.CharField(max_length=1024)
    size = models.BigIntegerField()                      # bytes
    bitrate = models.PositiveIntegerField()              # kbps

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["video", "quality"], name="uniq_variant_per_quality"),
        ]

    def __str__(self):
        return f"{self.video_id}:{self.quality}"


class Notification(models.Model):
    user_id = models.CharField(max_length=64, db_index=True)
    type = models.CharField(max_length=64)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=512, blank=True, default="")
    is_read = models.BooleanField(default=False)
    # Redelivered jobs reuse the same key, so the owner sees one event per outcome
    dedupe_key = models.CharField(max_length=255, unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
