"""Upload session progress endpoints: polling and Server-Sent Events."""
import asyncio
import json
import logging
import time

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from xlsmart.database import get_db
from xlsmart.models.upload_session import TERMINAL_STATUSES, UploadSession
from xlsmart.schemas.session import (
    SessionListResponse,
    SessionProgressRequest,
    SessionProgressResponse,
    UploadSessionDetailResponse,
)
from xlsmart.services.progress_events import channel_name, get_redis, session_snapshot
from xlsmart.services.session_store import SessionStore

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

logger = logging.getLogger(__name__)

TERMINAL_VALUES = {s.value for s in TERMINAL_STATUSES}

# Quiet polls (about 1.1s each) before the database is checked again
STREAM_RECHECK_TICKS = 10
STREAM_MAX_SECONDS = 60 * 60


@router.get("", response_model=SessionListResponse)
def list_sessions(
    limit: int = Query(50, ge=1, le=200, description="Most recent sessions to return"),
    db: Session = Depends(get_db),
):
    """List upload sessions, newest first."""
    query = db.query(UploadSession)
    items = query.order_by(UploadSession.created_at.desc()).limit(limit).all()
    return SessionListResponse(items=items, total=query.count())


@router.post("/progress", response_model=SessionProgressResponse)
def get_session_progress(request: SessionProgressRequest, db: Session = Depends(get_db)):
    """Status, progress blob and error message of one session."""
    session = SessionStore(db).read(request.session_id)
    return SessionProgressResponse(**session_snapshot(session))


@router.get("/{session_id}", response_model=UploadSessionDetailResponse)
def get_session(session_id: str, db: Session = Depends(get_db)):
    """
    Get upload session status and progress.

    This endpoint is used for polling-based progress tracking
    as a fallback when Server-Sent Events (SSE) are not available.
    """
    return SessionStore(db).read(session_id)


@router.get("/{session_id}/stream")
async def stream_progress(session_id: str, db: Session = Depends(get_db)):
    """
    Server-Sent Events (SSE) endpoint for real-time progress streaming.

    Sends the current snapshot first, then every snapshot published by the
    worker until the session reaches a terminal status. After
    ``STREAM_RECHECK_TICKS`` quiet polls the database is read again, so a
    terminal snapshot published before the subscription still ends the stream.
    """
    store = SessionStore(db)
    store.read(session_id)

    async def event_generator():
        """Generate SSE events from Redis pub/sub."""
        pubsub = get_redis().pubsub()
        pubsub.subscribe(channel_name(session_id))

        try:
            # Read after subscribing: later writes arrive as messages
            db.expire_all()
            snapshot = session_snapshot(store.read(session_id))
            yield f"data: {json.dumps(snapshot)}\n\n"
            if snapshot["status"] in TERMINAL_VALUES:
                return

            idle_ticks = 0
            deadline = time.monotonic() + STREAM_MAX_SECONDS
            while time.monotonic() < deadline:
                message = pubsub.get_message(timeout=1.0)

                if message and message["type"] == "message":
                    idle_ticks = 0
                    data = json.loads(message["data"])
                    yield f"data: {json.dumps(data)}\n\n"

                    if data.get("status") in TERMINAL_VALUES:
                        break
                else:
                    idle_ticks += 1
                    if idle_ticks >= STREAM_RECHECK_TICKS:
                        idle_ticks = 0
                        db.expire_all()
                        snapshot = session_snapshot(store.read(session_id))
                        if snapshot["status"] in TERMINAL_VALUES:
                            yield f"data: {json.dumps(snapshot)}\n\n"
                            break

                await asyncio.sleep(0.1)
            else:
                logger.warning(f"SSE stream for session {session_id} hit its time limit")

        except Exception as e:
            logger.warning(f"SSE stream error for session {session_id}: {e}")
            yield f"data: {json.dumps({'status': 'error', 'error': 'Stream error'})}\n\n"

        finally:
            pubsub.unsubscribe(channel_name(session_id))
            pubsub.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
