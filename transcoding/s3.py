import logging
import mimetypes
from pathlib import Path
import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Minimal content-type hints for HLS assets
CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".mp4": "video/mp4",
    ".ts": "video/MP2T",
}


def get_s3_client():
    """
    SDK client for server-side upload/download.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
            retries={"max_attempts": 5, "mode": "standard"},
        ),
    )


def content_type_for(path) -> str:
    suf = Path(str(path)).suffix.lower()
    if suf in CONTENT_TYPES:
        return CONTENT_TYPES[suf]
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"


class ObjectStore:
    """
    Byte transfer against one S3/MinIO bucket.
    Every SDK failure surfaces as StorageError.
    """

    def __init__(self, client=None, bucket: str | None = None, public_endpoint: str | None = None):
        self._client = client
        self.bucket = bucket or settings.S3_BUCKET
        self.public_endpoint = (public_endpoint or settings.S3_PUBLIC_ENDPOINT).rstrip("/")

    @property
    def client(self):
        # Created lazily so constructing a store never touches the network
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    def download(self, key: str, local_path) -> Path:
        local_path = Path(local_path)
        try:
            self.client.download_file(self.bucket, key, str(local_path))
        except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
            raise StorageError(f"Download of {key} failed: {e}") from e
        logger.info(f"Downloaded s3://{self.bucket}/{key} to {local_path}")
        return local_path

    def upload(self, local_path, key: str, content_type: str | None = None) -> str:
        """
        Upload a single file, overwriting any object already at key.
        Returns the object's public URL.
        """
        extra = {"ContentType": content_type or content_type_for(local_path)}
        try:
            self.client.upload_file(str(local_path), self.bucket, key, ExtraArgs=extra)
        except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        logger.info(f"Uploaded {local_path} to s3://{self.bucket}/{key}")
        return self.object_url(key)

    def object_url(self, key: str) -> str:
        """
        Direct object URL against the PUBLIC endpoint.
        """
        return f"{self.public_endpoint}/{self.bucket}/{key}"
