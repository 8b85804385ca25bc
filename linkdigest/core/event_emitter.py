"""
Progress Event Emitter

Lets the link content client report progress (fetch_start, fetch_complete,
transcript_start, transcript_complete) to a consumer reading from a queue.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)


class ProgressEventEmitter:
    """
    Collects progress events for one extraction request.
    Uses an asyncio queue so a consumer can stream events while work runs.
    """

    def __init__(self, job_id: str = 'extract'):
        self.job_id = job_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.start_time = datetime.now()

    async def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None):
        """
        Emit a progress event

        Args:
            event_type: Type of event (e.g., 'fetch_start', 'transcript_complete')
            data: Additional data to include in the event
        """
        elapsed = (datetime.now() - self.start_time).total_seconds()

        event = {
            'type': event_type,
            'elapsed': round(elapsed, 3),
            'timestamp': datetime.now().isoformat(),
            'data': data or {}
        }

        await self.queue.put(event)
        logger.debug(f"📡 [EVENTS] Emitted {event_type} for job {self.job_id}")

        # Yield to the event loop so a concurrent consumer can pick it up
        await asyncio.sleep(0)

    async def complete(self):
        """Mark processing as complete and close the event stream"""
        await self.emit('complete')
        await self.queue.put(None)

    async def error(self, error_message: str):
        await self.emit('error', {'message': error_message})
        await self.queue.put(None)

    async def stream(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield events until complete() or error() closes the stream"""
        while True:
            event = await self.queue.get()
            if event is None:
                break
            yield event
