"""
Server-Sent Events (SSE) endpoint for session changes.

A signed-in client keeps this stream open to learn about SIGNED_IN,
SIGNED_OUT and ROLES_CHANGED for its own user. The stream ends after the
sign-out of the token that opened it.
"""
import asyncio
import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from licensing.api.auth import get_session_context
from licensing.services.session_channel import SessionEventType, session_channel
from licensing.services.session_context import SessionContext

logger = logging.getLogger(__name__)

router = APIRouter()

PING_INTERVAL_SECONDS = 30


def format_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


async def session_event_stream(user_id: str, token_id: str, channel=session_channel):
    """Yield SSE frames for one user until its session is signed out"""
    queue = channel.connect(user_id)
    try:
        yield format_event({"event": "connected", "message": "Session stream connected"})

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=PING_INTERVAL_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue

            yield format_event(event.to_dict())

            if event.type == SessionEventType.SIGNED_OUT and event.token_id in (None, token_id):
                logger.info(f"Session stream for user {user_id} ended by sign-out")
                break
    except asyncio.CancelledError:
        logger.info("Session stream cancelled")
        raise
    finally:
        channel.disconnect(user_id, queue)


@router.get("/auth/events")
async def stream_session_events(context: SessionContext = Depends(get_session_context)):
    """
    Server-Sent Events stream of session changes for the current user.

    Requires a session (401 otherwise).
    """
    principal = context.require()

    return StreamingResponse(
        session_event_stream(principal.user_id, context.token_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
