import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

EVENT_MESSAGE = "message"
EVENT_ERROR = "error"
EVENT_STEP = "step"
EVENT_STATE = "state"
EVENT_COMPLETE = "complete"


@dataclass
class AutomationEvent:
    kind: str
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    seq: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "kind": self.kind,
            "message": self.message,
            "data": dict(self.data),
            "timestamp": self.timestamp,
        }


class EventBuffer:
    """Bounded in-memory event sink that callers poll with a sequence cursor."""

    def __init__(self, maxlen: int = 500) -> None:
        self._events = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._seq = 0

    def publish(self, event: AutomationEvent) -> None:
        with self._lock:
            self._seq += 1
            event.seq = self._seq
            self._events.append(event)

    def poll(self, since: int = 0, limit: Optional[int] = None) -> List[AutomationEvent]:
        with self._lock:
            events = [event for event in self._events if event.seq > since]
        if limit is not None and limit >= 0:
            events = events[:limit]
        return events

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._seq

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
