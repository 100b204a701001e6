"""Redis pub/sub publisher."""

import json
from typing import Any

import redis

from settleit.integrations.base import Publisher


class RedisPublisher(Publisher):
    """Publishes JSON payloads on Redis channels."""

    def __init__(self, url: str, client=None):
        self.client = client if client is not None else redis.from_url(url, decode_responses=True)

    def publish(self, channel: str, payload: dict[str, Any]) -> None:
        self.client.publish(channel, json.dumps(payload, default=str, sort_keys=True))
