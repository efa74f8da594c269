from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Video",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("owner_id", models.CharField(db_index=True, max_length=64)),
                ("source_key", models.CharField(max_length=512)),
                ("duration", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "transcoding_status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PROCESSING", "Processing"),
                            ("COMPLETED", "Completed"),
                            ("FAILED", "Failed"),
                        ],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("transcoding_progress", models.PositiveSmallIntegerField(default=0)),
                ("transcoding_error", models.TextField(blank=True, null=True)),
                ("manifest_url", models.CharField(blank=True, max_length=1024, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("type", models.CharField(max_length=64)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("link", models.CharField(blank=True, default="", max_length=512)),
                ("is_read", models.BooleanField(default=False)),
                ("dedupe_key", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="QualityVariant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quality", models.CharField(max_length=16)),
                ("url", models.CharField(max_length=1024)),
                ("size", models.BigIntegerField()),
                ("bitrate", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "video",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="quality_variants",
                        to="transcoding.video",
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="qualityvariant",
            constraint=models.UniqueConstraint(fields=("video", "quality"), name="uniq_variant_per_quality"),
        ),
    ]
