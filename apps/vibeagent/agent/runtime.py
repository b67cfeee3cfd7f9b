import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from vibeagent.contracts import Decision, Message, Unrecognized
from vibeagent.domains.act import SETTLE_NONE, SETTLE_SCROLL, ActionDispatcher, ActionOutcome
from vibeagent.domains.act.focus import ProcessedFieldSet
from vibeagent.domains.decide import DecisionOracleClient, build_step_prompt
from vibeagent.domains.observe import ContextBuilder, ScreenContext, contexts_identical
from vibeagent.domains.ports import EventSink
from vibeagent.domains.run import (
    StepHistory,
    TaskStep,
    classify_interaction,
    extract_ui_context,
    validate_sequence,
)
from vibeagent.events import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_MESSAGE,
    EVENT_STATE,
    EVENT_STEP,
    AutomationEvent,
)
from shared.errors import (
    AgentError,
    AutomationBusy,
    ExecutorFailure,
    OracleUnavailable,
    SequenceViolation,
    TargetNotFound,
)

logger = logging.getLogger("vibeagent.agent")

TARGET_NOT_FOUND_NOTE = (
    "target was not on screen; pick another element, use OCR text, or scroll first"
)


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class LoopConfig:
    unchanged_depth: int = 5
    unchanged_window: float = 3.0
    action_wait: float = 0.8
    scroll_wait: float = 4.0
    unchanged_wait: float = 2.0
    history_window: int = 10

    @classmethod
    def from_settings(cls, settings) -> "LoopConfig":
        return cls(
            unchanged_depth=settings.unchanged_depth,
            unchanged_window=settings.unchanged_window,
            action_wait=settings.action_wait,
            scroll_wait=settings.scroll_wait,
            unchanged_wait=settings.unchanged_wait,
            history_window=settings.history_window,
        )


@dataclass
class LoopResult:
    task: str
    state: LoopState
    success: bool
    error: Optional[str] = None
    steps: List[TaskStep] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "task": self.task,
            "state": self.state.value,
            "success": self.success,
            "error": self.error,
            "steps": [step.to_dict() for step in self.steps],
        }


class _NullSink:
    def publish(self, event) -> None:
        return None


class AutomationLoop:
    """Observe, decide, act until the oracle reports completion or a stop is requested.

    Idle -> Running -> {Completed, Failed, Cancelled} -> Idle. Only one task runs
    at a time; ``stop()`` is honoured at the next iteration boundary.
    """

    def __init__(
        self,
        builder: ContextBuilder,
        oracle: DecisionOracleClient,
        dispatcher: ActionDispatcher,
        fields: ProcessedFieldSet,
        config: Optional[LoopConfig] = None,
        sink: Optional[EventSink] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.builder = builder
        self.oracle = oracle
        self.dispatcher = dispatcher
        self.fields = fields
        self.config = config or LoopConfig()
        self.sink = sink or _NullSink()
        self._sleep = sleep
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._state = LoopState.IDLE
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[Callable[[LoopResult], None]] = []
        self._screen_key: Optional[Tuple[str, Optional[str]]] = None
        self.history = StepHistory()
        self.task: Optional[str] = None
        self.step_number = 0
        self.last_result: Optional[LoopResult] = None

    @property
    def state(self) -> LoopState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state == LoopState.RUNNING

    def add_listener(self, callback: Callable[[LoopResult], None]) -> None:
        self._listeners.append(callback)

    def start(self, task: str) -> threading.Thread:
        """Run ``task`` on a background thread. Raises AutomationBusy unless Idle."""
        self._begin(task)
        thread = threading.Thread(
            target=self._run_task, args=(task,), name="vibeagent-loop", daemon=True
        )
        self._thread = thread
        thread.start()
        return thread

    def run(self, task: str) -> LoopResult:
        """Run ``task`` on the calling thread until it reaches a terminal state."""
        self._begin(task)
        return self._run_task(task)

    def stop(self) -> bool:
        with self._lock:
            if self._state != LoopState.RUNNING:
                return False
            self._stop.set()
        logger.info("stop requested")
        self._publish(EVENT_MESSAGE, "Automation stop requested")
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _begin(self, task: str) -> None:
        task = (task or "").strip()
        if not task:
            raise AgentError("task must not be empty")
        with self._lock:
            if self._state != LoopState.IDLE:
                raise AutomationBusy("automation already {}".format(self._state.value))
            self._state = LoopState.RUNNING
            self._stop.clear()
            self.task = task
            self.step_number = 0
            self.history.clear()
            self.fields.clear()
            self._screen_key = None
        logger.info("automation started: %s", task)
        self._publish(EVENT_STATE, "Automation started", state=LoopState.RUNNING.value, task=task)

    def _run_task(self, task: str) -> LoopResult:
        state, error = LoopState.FAILED, "automation loop aborted"
        try:
            state, error = self._loop(task)
        except AgentError as exc:
            logger.error("automation failed: %s", exc)
            error = str(exc)
        finally:
            result = self._finish(task, state, error)
        return result

    def _loop(self, task: str) -> Tuple[LoopState, Optional[str]]:
        previous: Optional[ScreenContext] = None
        force_refresh = False
        while True:
            if self._stop.is_set():
                return LoopState.CANCELLED, None
            context = self.builder.capture()
            self._track_screen(context)
            if not force_refresh and contexts_identical(
                previous,
                context,
                depth=self.config.unchanged_depth,
                window=self.config.unchanged_window,
            ):
                logger.info("screen unchanged, waiting for the UI to settle")
                self._sleep(self.config.unchanged_wait)
                continue
            force_refresh = False
            self.step_number += 1

            prompt = build_step_prompt(
                task, self.step_number, context, self._recent_steps()
            )
            try:
                decision = self.oracle.decide(prompt)
            except OracleUnavailable as exc:
                self._record(
                    task,
                    TaskStep(
                        step_number=self.step_number,
                        action="decide",
                        description="request next action",
                        success=False,
                        error=str(exc),
                    ),
                )
                self._publish(EVENT_ERROR, "Failed to get a decision: {}".format(exc))
                return LoopState.FAILED, str(exc)
            previous = context
            self._publish(
                EVENT_MESSAGE,
                decision.description or decision.name,
                decision=decision.to_dict(),
            )

            if decision.is_complete:
                self._record_completion(task, decision)
                return LoopState.COMPLETED, None

            outcome = self._execute(task, decision, context)
            if outcome is None:
                self._sleep(self.config.action_wait)
                continue
            if outcome.settle == SETTLE_SCROLL:
                logger.info(
                    "scroll action, waiting %.1fs for content to settle",
                    self.config.scroll_wait,
                )
                self._sleep(self.config.scroll_wait)
                force_refresh = True
            elif outcome.settle == SETTLE_NONE:
                force_refresh = outcome.context is not None
            else:
                self._sleep(self.config.action_wait)

    def _recent_steps(self) -> List[TaskStep]:
        steps = self.history.steps
        window = self.config.history_window
        if window and window > 0:
            return steps[-window:]
        return steps

    def _track_screen(self, context: ScreenContext) -> None:
        if context.degraded:
            self.fields.clear()
            self._screen_key = None
            return
        key = (context.current_app.package_name, context.current_app.activity)
        if key != self._screen_key:
            if len(self.fields):
                logger.debug("screen changed to %s, forgetting focused fields", key[0])
            self.fields.clear()
        self._screen_key = key

    def _execute(
        self, task: str, decision: Decision, context: ScreenContext
    ) -> Optional[ActionOutcome]:
        name = _action_name(decision)
        step = TaskStep(
            step_number=self.step_number,
            action=name,
            parameters=dict(decision.parameters),
            description=decision.description or name,
        )
        try:
            validate_sequence(name, decision.parameters, task, self.history.steps)
            outcome = self.dispatcher.execute(decision.action, context)
        except TargetNotFound as exc:
            step.success = False
            step.error = str(exc)
            step.note = TARGET_NOT_FOUND_NOTE
            self._record(task, step)
            self._publish(EVENT_ERROR, str(exc), step=step.to_dict())
            return None
        except SequenceViolation as exc:
            step.success = False
            step.error = str(exc)
            step.note = str(exc)
            self._record(task, step)
            self._publish(EVENT_ERROR, str(exc), step=step.to_dict())
            return None
        except ExecutorFailure as exc:
            step.success = False
            step.error = str(exc)
            self._record(task, step)
            self._publish(EVENT_ERROR, str(exc), step=step.to_dict())
            raise
        if outcome.refocused:
            step.note = "input refocused via {}".format(outcome.refocused)
        self._record(task, step, target_editable=outcome.target_editable)
        if isinstance(decision.action, Message):
            self._publish(EVENT_MESSAGE, outcome.detail)
        logger.info("step %d %s: %s", step.step_number, name, outcome.detail)
        return outcome

    def _record_completion(self, task: str, decision: Decision) -> None:
        name = _action_name(decision) if decision.action is not None else "complete"
        step = TaskStep(
            step_number=self.step_number,
            action=name,
            parameters=dict(decision.parameters),
            description=decision.description or "Automation finished",
        )
        if decision.action is not None:
            step.note = "task reported complete, action not executed"
        self._record(task, step)

    def _record(self, task: str, step: TaskStep, target_editable: bool = False) -> None:
        step.interaction_type = classify_interaction(
            step.action, step.description, task, target_editable
        )
        step.ui_context = extract_ui_context(step.action, step.description, task)
        self.history.append(step)
        self._publish(EVENT_STEP, step.description, step=step.to_dict())

    def _finish(self, task: str, state: LoopState, error: Optional[str]) -> LoopResult:
        success = state == LoopState.COMPLETED
        result = LoopResult(
            task=task,
            state=state,
            success=success,
            error=error,
            steps=self.history.steps,
        )
        with self._lock:
            self._state = state
            self.last_result = result
        logger.info("automation %s after %d step(s)", state.value, len(result.steps))
        self._publish(EVENT_STATE, "Automation {}".format(state.value), state=state.value)
        self._publish(EVENT_COMPLETE, error or "", success=success, state=state.value)
        with self._lock:
            self._state = LoopState.IDLE
        for listener in list(self._listeners):
            listener(result)
        return result

    def _publish(self, kind: str, message: str, **data) -> None:
        self.sink.publish(AutomationEvent(kind=kind, message=message or "", data=data))


def _action_name(decision: Decision) -> str:
    action = decision.action
    if action is None or isinstance(action, Unrecognized):
        return decision.name or ""
    return action.kind
