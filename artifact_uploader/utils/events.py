"""Progress events for upload phases."""
import asyncio
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# Emitted by UploadOrchestrator and the use cases it wires up
INITIATED = "initiated"          # (session)
LINK_CREATED = "link_created"    # (path, status_code)
LINKS_CREATED = "links_created"  # (count)
FILE_UPLOADED = "file_uploaded"  # (path, status_code)
FILES_UPLOADED = "files_uploaded"  # (count)
POLL = "poll"                    # (job_status)
COMPLETED = "completed"          # (completion_result)
ABORTED = "aborted"              # (session)


class EventEmitter:
    """
    Simple event emitter for upload events.

    Listeners may be plain functions or coroutine functions. Concurrent
    transfers emit through one lock, so a listener never runs twice at once.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable) -> None:
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        """Unsubscribe from an event."""
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    async def emit(self, event_name: str, *args) -> None:
        """Call every listener of an event. Listener errors are logged, never raised."""
        listeners = list(self._listeners.get(event_name, ()))
        if not listeners:
            return

        async with self._lock:
            for callback in listeners:
                try:
                    result = callback(*args)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error("Error in %s listener: %s", event_name, e)
