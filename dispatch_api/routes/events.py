"""
Event Stream Route

GET /events/stream relays the unit status broadcasts published in
dispatch_api.services.socket to the browser as server-sent events. The SSE
event name is the broadcast's "event" field; the data is its JSON payload.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from dispatch_api.config import settings
from dispatch_api.dependencies import get_current_user
from dispatch_api.models import User
from dispatch_api.services.socket import subscribe_channel


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/events", tags=["events"])


@router.get("/stream")
async def stream_events(
    request: Request,
    user: User = Depends(get_current_user)
):
    async def event_generator():
        async for message in subscribe_channel(settings.BROADCAST_CHANNEL):
            if await request.is_disconnected():
                break

            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                logger.warning(f"Dropped malformed broadcast: {message[:100]}")
                continue

            yield {
                "event": payload.get("event", "message"),
                "data": json.dumps(payload.get("data")),
            }

        logger.debug(f"Event stream closed for user {user.id}")

    return EventSourceResponse(event_generator())
