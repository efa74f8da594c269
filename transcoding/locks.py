import logging
from contextlib import contextmanager
from uuid import uuid4

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def lock_key(video_id) -> str:
    return f"transcode-lock:{video_id}"


@contextmanager
def video_lock(video_id, token: str | None = None, timeout: int | None = None):
    """
    Best-effort exclusive lock on one video, held in the shared cache.

    Yields True when acquired, False when another worker already holds it.
    token names the holder; a holder presenting the token already stored
    (a task redelivered under the same id after its worker died) gets the
    lock back at once instead of waiting for it to expire.
    The lock expires after `timeout` seconds so a dead worker cannot hold it forever.
    """
    key = lock_key(video_id)
    token = token or uuid4().hex
    timeout = timeout or settings.TRANSCODE_LOCK_TIMEOUT
    acquired = cache.add(key, token, timeout)
    if not acquired and cache.get(key) == token:
        logger.warning(f"Reclaiming lock on video {video_id} left by an earlier delivery of {token}")
        cache.set(key, token, timeout)
        acquired = True
    if not acquired:
        logger.info(f"Video {video_id} is already being transcoded elsewhere")
    try:
        yield acquired
    finally:
        # Only release our own lock; it may have expired and been taken over
        if acquired and cache.get(key) == token:
            cache.delete(key)
