"""Owner notifications: persisted rows plus push to any live connections."""
import logging
import threading
from collections import defaultdict

from django.db import IntegrityError, transaction

from .models import Notification

logger = logging.getLogger(__name__)

TRANSCODING_EVENT = "video_transcoding"


class ConnectionRegistry:
    """
    Live connections per user. A connection is any callable taking the event
    dict (a websocket send, a queue put, ...). A user may hold several at once.
    """

    def __init__(self):
        self._connections = defaultdict(list)
        self._lock = threading.Lock()

    def connect(self, user_id: str, send) -> None:
        with self._lock:
            self._connections[str(user_id)].append(send)
        logger.info(f"Connection registered for user {user_id}")

    def disconnect(self, user_id: str, send) -> None:
        with self._lock:
            sends = self._connections.get(str(user_id), [])
            if send in sends:
                sends.remove(send)
            if not sends:
                self._connections.pop(str(user_id), None)

    def connections_for(self, user_id: str) -> list:
        with self._lock:
            return list(self._connections.get(str(user_id), []))

    def send_to_user(self, user_id: str, event: dict) -> int:
        """Push event to every connection of user_id. Dead connections are dropped."""
        delivered = 0
        for send in self.connections_for(user_id):
            try:
                send(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Error sending notification to user {user_id}: {e}")
                self.disconnect(user_id, send)
        return delivered


class Notifier:
    """notify(user_id, event): store the event for the user and push it live."""

    def __init__(self, registry: ConnectionRegistry | None = None):
        self.registry = registry if registry is not None else connection_registry

    def notify(self, user_id: str, event: dict, dedupe_key: str | None = None) -> Notification:
        """
        Record one event for user_id. With a dedupe_key, a second call carrying
        the same key returns the existing row and pushes nothing.
        """
        if dedupe_key:
            existing = Notification.objects.filter(dedupe_key=dedupe_key).first()
            if existing:
                logger.info(f"Skipping duplicate notification {dedupe_key}")
                return existing

        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    user_id=str(user_id),
                    type=event.get("type", TRANSCODING_EVENT),
                    title=event["title"],
                    message=event["message"],
                    link=event.get("link", ""),
                    dedupe_key=dedupe_key,
                )
        except IntegrityError:
            # Lost a race with a concurrent redelivery of the same job
            if not dedupe_key:
                raise
            return Notification.objects.get(dedupe_key=dedupe_key)

        self.registry.send_to_user(
            user_id,
            {
                "id": notification.id,
                "userId": notification.user_id,
                "type": notification.type,
                "title": notification.title,
                "message": notification.message,
                "link": notification.link,
                "createdAt": notification.created_at.isoformat(),
            },
        )
        return notification


def recent_notifications(user_id: str, limit: int = 20):
    return Notification.objects.filter(user_id=str(user_id))[:limit]


# Process-wide registry; connection handlers register into it
connection_registry = ConnectionRegistry()
