import logging
import time
from typing import Callable, List, Optional

from infra.adb import AdbClient
from vibeagent.agent import AutomationLoop, LoopConfig, LoopResult
from vibeagent.domains.act import ActionDispatcher, InputFocuser, ProcessedFieldSet
from vibeagent.domains.decide import DecisionOracleClient, LlmOracle
from vibeagent.domains.device import AdbActionExecutor, AdbScreenInspector
from vibeagent.domains.observe import ContextBuilder
from vibeagent.domains.ports import (
    ActionExecutor,
    CommandSource,
    CompletionListener,
    DecisionOracle,
    ScreenInspector,
)
from vibeagent.domains.resolve import TargetResolver
from vibeagent.domains.run import TaskStep
from vibeagent.domains.scroll import DynamicScroller
from vibeagent.domains.voice import VoiceTask, VoiceTaskQueue
from vibeagent.events import EventBuffer
from vibeagent.settings import AgentSettings, build_llm_config
from shared.errors import AgentError

logger = logging.getLogger("vibeagent.session")


class AutomationSession:
    """Owns one automation loop and the voice queue that feeds it.

    Create it once per device, use it as a context manager (or call ``close``)
    so queued voice tasks are cancelled and a running loop is asked to stop.
    """

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        *,
        executor: ActionExecutor,
        inspector: ScreenInspector,
        oracle: DecisionOracle,
        events: Optional[EventBuffer] = None,
        listener: Optional[CompletionListener] = None,
        command_source: Optional[CommandSource] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or AgentSettings()
        self.events = events or EventBuffer()
        self.listener = listener
        self.command_source = command_source
        match = self.settings.match
        scroll = self.settings.scroll
        loop_settings = self.settings.loop

        self.executor = executor
        self.inspector = inspector
        self.builder = ContextBuilder(
            inspector, opaque_hints=self.settings.ocr.opaque_class_hints, clock=clock
        )
        self.resolver = TargetResolver(
            tolerance=match.bounds_tolerance,
            padding=match.tap_padding,
            ocr_threshold=match.ocr_threshold,
            token_weight=match.token_weight,
            prefix_weight=match.prefix_weight,
        )
        self.scroller = DynamicScroller(
            self.builder,
            executor,
            max_attempts=scroll.max_attempts,
            identical_threshold=scroll.identical_threshold,
            wait=scroll.wait,
            fuzzy_ratio=match.fuzzy_word_ratio,
            sleep=sleep,
        )
        self.oracle = DecisionOracleClient(
            oracle, min_interval=loop_settings.oracle_min_interval, sleep=sleep
        )
        self.fields = ProcessedFieldSet()
        self.focuser = InputFocuser(executor, self.resolver, self.fields, sleep=sleep)
        self.dispatcher = ActionDispatcher(
            executor,
            self.resolver,
            self.scroller,
            self.focuser,
            type_delay_ms=loop_settings.type_delay_ms,
        )
        self.loop = AutomationLoop(
            self.builder,
            self.oracle,
            self.dispatcher,
            self.fields,
            config=LoopConfig.from_settings(loop_settings),
            sink=self.events,
            sleep=sleep,
        )
        self.loop.add_listener(self._on_loop_finished)
        self.voice = VoiceTaskQueue(
            self._run_voice_task,
            retention=self.settings.voice.completed_retention,
            clock=clock,
        )
        self._voice_task_id: Optional[int] = None
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: AgentSettings,
        *,
        adb: Optional[AdbClient] = None,
        oracle: Optional[DecisionOracle] = None,
        **kwargs,
    ) -> "AutomationSession":
        """Build a session driving an adb device with the configured LLM oracle."""
        adb = adb or AdbClient(
            adb_path=settings.adb_path,
            device_id=settings.device_id,
            ime_id=settings.adb_ime_id,
        )
        ocr = settings.ocr
        inspector = AdbScreenInspector(
            adb,
            ocr_provider=ocr.provider,
            ocr_url=ocr.remote_url,
            ocr_timeout=ocr.timeout,
            ocr_api_key=ocr.api_key,
            ocr_lang=ocr.lang,
            ocr_threshold=ocr.threshold,
        )
        return cls(
            settings,
            executor=AdbActionExecutor(adb),
            inspector=inspector,
            oracle=oracle or LlmOracle(build_llm_config(settings)),
            **kwargs,
        )

    def __enter__(self) -> "AutomationSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self, task: str) -> None:
        self._ensure_open()
        self.loop.start(task)

    def run(self, task: str) -> LoopResult:
        self._ensure_open()
        return self.loop.run(task)

    def stop(self) -> bool:
        return self.loop.stop()

    def enqueue_voice(self, wake_word_detected: bool, command: Optional[str] = None) -> VoiceTask:
        self._ensure_open()
        return self.voice.enqueue(wake_word_detected, command)

    def history(self) -> List[TaskStep]:
        return self.loop.history.steps

    def status(self) -> dict:
        last = self.loop.last_result
        current = self.voice.current
        return {
            "state": self.loop.state.value,
            "task": self.loop.task,
            "step": self.loop.step_number,
            "oracle_busy": self.oracle.in_flight,
            "last_result": None
            if last is None
            else {"state": last.state.value, "success": last.success, "error": last.error},
            "voice_task": current.to_dict() if current else None,
        }

    def close(self, timeout: Optional[float] = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self.voice.shutdown()
        if self.loop.stop():
            self.loop.join(timeout)
        logger.info("automation session closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise AgentError("automation session is closed")

    def _run_voice_task(self, task: VoiceTask) -> None:
        command = task.command
        if not command and self.command_source is not None:
            command = self.command_source.next_command(task)
        command = (command or "").strip()
        if not command:
            self._notify(False, "no command recognised")
            raise AgentError("voice task {} has no command".format(task.id))
        logger.info("voice task %d starting: %s", task.id, command)
        self._voice_task_id = task.id
        try:
            self.loop.start(command)
        except AgentError:
            self._voice_task_id = None
            raise

    def _on_loop_finished(self, result: LoopResult) -> None:
        task_id, self._voice_task_id = self._voice_task_id, None
        self._notify(result.success, result.error)
        if task_id is not None:
            self.voice.complete(task_id, result.success, result.error)

    def _notify(self, success: bool, error: Optional[str]) -> None:
        if self.listener is not None:
            self.listener.on_automation_complete(success, error)
