"""
Real-time Broadcast Service

Unit status changes are published to a Redis pub/sub channel. Dispatch
screens receive them through the /events/stream endpoint, which relays the
channel as server-sent events.

Each event is a JSON object: {"event": <name>, "data": <payload>}.
"""

import json
import logging

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_api.config import settings
from dispatch_api.repositories import UnitRepository
from dispatch_api.serializers import serialize_unit


logger = logging.getLogger(__name__)


UPDATE_OFFICER_STATUS = "UpdateOfficerStatus"
UPDATE_DEPUTY_STATUS = "UpdateDeputyStatus"


# The client connects lazily, on first command
redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)


async def publish_message(channel: str, message: dict):
    """
    Publish a message to a Redis pub/sub channel.

    Args:
        channel: Redis channel name
        message: JSON-serializable payload
    """
    await redis_client.publish(channel, json.dumps(message))


async def subscribe_channel(channel: str):
    """
    Subscribe to a Redis pub/sub channel and yield messages as they arrive.

    Yields:
        The raw JSON string of every message published to the channel
    """
    pubsub = redis_client.pubsub()
    await pubsub.subscribe(channel)

    try:
        async for message in pubsub.listen():
            # Skip subscribe/unsubscribe confirmations
            if message["type"] == "message":
                yield message["data"]
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


async def emit_update_officer_status(db: AsyncSession):
    """Broadcast the current list of on-duty officers."""
    officers = await UnitRepository(db).list_on_duty_officers()
    await publish_message(
        settings.BROADCAST_CHANNEL,
        {"event": UPDATE_OFFICER_STATUS, "data": [serialize_unit(o) for o in officers]},
    )
    logger.debug(f"Broadcast {UPDATE_OFFICER_STATUS} with {len(officers)} officers")


async def emit_update_deputy_status(db: AsyncSession):
    """Broadcast the current list of on-duty EMS/FD deputies."""
    deputies = await UnitRepository(db).list_on_duty_deputies()
    await publish_message(
        settings.BROADCAST_CHANNEL,
        {"event": UPDATE_DEPUTY_STATUS, "data": [serialize_unit(d) for d in deputies]},
    )
    logger.debug(f"Broadcast {UPDATE_DEPUTY_STATUS} with {len(deputies)} deputies")
