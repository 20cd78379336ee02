"""Client-side poller that follows an upload session until it finishes."""
import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from xlsmart.models.upload_session import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

TERMINAL_VALUES = {s.value for s in TERMINAL_STATUSES}

Snapshot = Dict[str, Any]


class ProgressPoller:
    """
    Polls ``GET /api/sessions/{id}`` at a fixed interval.

    Transient HTTP failures are logged and retried on the next tick; a 404
    ends polling because the session will never appear.
    """

    def __init__(
        self,
        base_url: str,
        interval_seconds: float = 2.0,
        max_wait_seconds: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.base_url = base_url.rstrip("/")
        self.interval_seconds = interval_seconds
        self.max_wait_seconds = max_wait_seconds
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def fetch(self, client: httpx.Client, session_id: str) -> Snapshot:
        response = client.get(f"{self.base_url}/api/sessions/{session_id}")
        response.raise_for_status()
        return response.json()

    def poll(
        self,
        session_id: str,
        on_update: Optional[Callable[[Snapshot], None]] = None,
    ) -> Snapshot:
        """
        Block until the session reaches a terminal status.

        Args:
            session_id: Upload session to follow
            on_update: Called with every snapshot fetched

        Returns:
            The final snapshot

        Raises:
            TimeoutError: ``max_wait_seconds`` elapsed first
            httpx.HTTPStatusError: the session does not exist
        """
        started = self._clock()
        with httpx.Client(timeout=10.0, transport=self._transport) as client:
            while True:
                try:
                    snapshot = self.fetch(client, session_id)
                except httpx.HTTPStatusError as e:
                    if e.response.status_code == 404:
                        raise
                    logger.warning(f"Polling session {session_id} failed: {e}")
                    snapshot = None
                except httpx.TransportError as e:
                    logger.warning(f"Polling session {session_id} failed: {e}")
                    snapshot = None

                if snapshot is not None:
                    if on_update:
                        on_update(snapshot)
                    if snapshot.get("status") in TERMINAL_VALUES:
                        return snapshot

                elapsed = self._clock() - started
                if self.max_wait_seconds is not None and elapsed >= self.max_wait_seconds:
                    raise TimeoutError(
                        f"Session {session_id} not finished after {self.max_wait_seconds}s"
                    )
                self._sleep(self.interval_seconds)
