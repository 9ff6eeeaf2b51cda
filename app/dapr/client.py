"""Dapr pub/sub publisher talking to the sidecar over HTTP."""
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
import logging

import httpx

from app.config import DAPR_HTTP_ENDPOINT, PUBSUB_NAME
from app.services.errors import PublishError

logger = logging.getLogger(__name__)


class DaprEventPublisher:
    """Publishes events to Kafka via the Dapr sidecar's pub/sub API."""

    def __init__(
        self,
        base_url: str = DAPR_HTTP_ENDPOINT,
        pubsub_name: str = PUBSUB_NAME,
        client: Optional[httpx.Client] = None,
        timeout: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.pubsub_name = pubsub_name
        self.client = client or httpx.Client(timeout=timeout)

    def publish_event(self, topic: str, event_type: str, data: Dict[str, Any], source: str = "recurring-routines-api"):
        """
        Publish an event envelope to a topic.

        Raises:
            PublishError: If the sidecar is unreachable or rejects the event
        """
        event_envelope = {
            "event_id": str(uuid.uuid4()),
            "type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": source,
            "data": data
        }
        url = f"{self.base_url}/v1.0/publish/{self.pubsub_name}/{topic}"

        try:
            response = self.client.post(url, json=event_envelope)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to publish event to topic {topic}: {str(e)}")
            raise PublishError(f"Failed to publish {event_type} to {topic}") from e

        logger.info(f"Published event {event_type} to topic {topic}")
        return {"success": True, "event_id": event_envelope["event_id"]}

    def publish_daily_digest(self, topic: str, digest: Dict[str, Any]):
        """Publish routines.daily_digest event."""
        return self.publish_event(
            topic=topic,
            event_type="routines.daily_digest",
            data=digest
        )

    def close(self):
        self.client.close()
