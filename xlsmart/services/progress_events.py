"""Redis pub/sub fan-out of session progress for Server-Sent Events."""
import json
import logging
from functools import lru_cache

import redis

from xlsmart.config import get_settings
from xlsmart.models.upload_session import UploadSession

logger = logging.getLogger(__name__)


@lru_cache
def get_redis() -> redis.Redis:
    """Shared client; its connection pool is reused by every publish and stream."""
    return redis.Redis.from_url(get_settings().redis_url, decode_responses=True)


def channel_name(session_id: str) -> str:
    return f"session:{session_id}"


def session_snapshot(session: UploadSession) -> dict:
    """Shape shared by the polling endpoint, the SSE stream and the poller."""
    return {
        "session_id": session.id,
        "status": session.status,
        "progress": dict(session.progress or {}),
        "error": session.error_message,
    }


def publish_progress(session: UploadSession) -> None:
    """
    Publish a progress snapshot to Redis pub/sub for real-time SSE streaming.

    Args:
        session: Upload session whose state was just written
    """
    try:
        get_redis().publish(channel_name(session.id), json.dumps(session_snapshot(session)))
    except Exception as e:
        # Don't fail the run if Redis is unavailable
        logger.warning(f"Failed to publish progress for session {session.id}: {e}")
