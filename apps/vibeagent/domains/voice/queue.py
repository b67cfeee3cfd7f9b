import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from shared.errors import AgentError

logger = logging.getLogger("vibeagent.voice")


class VoiceTaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class VoiceTask:
    id: int
    wake_word_detected: bool
    command: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    status: VoiceTaskStatus = VoiceTaskStatus.PENDING
    finished_at: Optional[float] = None
    success: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wake_word_detected": self.wake_word_detected,
            "command": self.command,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "finished_at": self.finished_at,
            "success": self.success,
            "error": self.error,
        }


class VoiceTaskQueue:
    """FIFO of voice-triggered tasks; at most one task is Processing at a time.

    ``runner`` is invoked outside the lock with the task it should start. It must
    eventually lead to ``complete(task_id)``; if it raises, the task is cancelled.
    """

    def __init__(
        self,
        runner: Callable[[VoiceTask], None],
        retention: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._runner = runner
        self.retention = retention
        self._clock = clock
        self._lock = threading.Lock()
        self._tasks: List[VoiceTask] = []
        self._counter = 0
        self._current: Optional[VoiceTask] = None
        self._closed = False

    @property
    def current(self) -> Optional[VoiceTask]:
        with self._lock:
            return self._current

    def tasks(self) -> List[VoiceTask]:
        with self._lock:
            return list(self._tasks)

    def enqueue(self, wake_word_detected: bool, command: Optional[str] = None) -> VoiceTask:
        with self._lock:
            if self._closed:
                raise AgentError("voice task queue is shut down")
            if wake_word_detected:
                cancelled = self._cancel_pending()
                if cancelled:
                    logger.info("wake word superseded %d pending task(s)", cancelled)
            self._counter += 1
            task = VoiceTask(
                id=self._counter,
                wake_word_detected=wake_word_detected,
                command=command,
                timestamp=self._clock(),
            )
            self._tasks.append(task)
            logger.info("enqueued voice task %d", task.id)
            claimed = self._claim_next() if self._current is None else None
        self._dispatch(claimed)
        return task

    def process_next(self) -> Optional[VoiceTask]:
        with self._lock:
            claimed = self._claim_next() if self._current is None else None
        self._dispatch(claimed)
        return claimed

    def complete(self, task_id: int, success: bool = True, error: Optional[str] = None) -> None:
        with self._lock:
            task = self._find(task_id)
            if task is None or task.status != VoiceTaskStatus.PROCESSING:
                logger.warning("ignoring completion for voice task %s", task_id)
                return
            task.status = VoiceTaskStatus.COMPLETED
            task.finished_at = self._clock()
            task.success = success
            task.error = error
            if self._current is task:
                self._current = None
            self._prune()
            logger.info("voice task %d completed success=%s", task.id, success)
        self.process_next()

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            for task in self._tasks:
                if task.status != VoiceTaskStatus.COMPLETED:
                    task.status = VoiceTaskStatus.CANCELLED
                    task.finished_at = self._clock()
            self._current = None

    def _find(self, task_id: int) -> Optional[VoiceTask]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _cancel_pending(self) -> int:
        count = 0
        for task in self._tasks:
            if task.status == VoiceTaskStatus.PENDING:
                task.status = VoiceTaskStatus.CANCELLED
                task.finished_at = self._clock()
                count += 1
        return count

    def _claim_next(self) -> Optional[VoiceTask]:
        if self._closed:
            return None
        for task in self._tasks:
            if task.status == VoiceTaskStatus.PENDING:
                task.status = VoiceTaskStatus.PROCESSING
                self._current = task
                return task
        return None

    def _prune(self) -> None:
        cutoff = self._clock() - self.retention
        self._tasks = [
            task
            for task in self._tasks
            if not (
                task.status == VoiceTaskStatus.COMPLETED
                and (task.finished_at or task.timestamp) < cutoff
            )
        ]

    def _dispatch(self, task: Optional[VoiceTask]) -> None:
        while task is not None:
            try:
                self._runner(task)
                return
            except AgentError as exc:
                logger.warning("voice task %d could not start: %s", task.id, exc)
                with self._lock:
                    task.status = VoiceTaskStatus.CANCELLED
                    task.finished_at = self._clock()
                    task.error = str(exc)
                    if self._current is task:
                        self._current = None
                    task = self._claim_next()
