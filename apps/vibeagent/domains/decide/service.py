import logging
import threading
import time
from typing import Callable

from infra.http.errors import HttpError
from infra.llm import LlmConfig, call_llm_text
from infra.llm.errors import LlmError
from vibeagent.contracts import Decision, SchemaError, parse_decision_text
from vibeagent.domains.ports import DecisionOracle
from shared.errors import OracleBusy, OracleUnavailable

logger = logging.getLogger("vibeagent.decide")


class LlmOracle:
    def __init__(self, config: LlmConfig) -> None:
        self.config = config

    def generate(self, prompt: str) -> str:
        return call_llm_text(self.config, prompt)


class DecisionOracleClient:
    """Single-flight access to the oracle with a minimum gap between calls."""

    def __init__(
        self,
        oracle: DecisionOracle,
        min_interval: float = 0.8,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._oracle = oracle
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._in_flight = False
        self._last_finished = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def decide(self, prompt: str) -> Decision:
        with self._lock:
            if self._in_flight:
                raise OracleBusy("an oracle request is already in flight")
            self._in_flight = True
            last_finished = self._last_finished
        try:
            if last_finished is not None:
                gap = self.min_interval - (self._clock() - last_finished)
                if gap > 0:
                    self._sleep(gap)
            return self._request(prompt)
        finally:
            with self._lock:
                self._in_flight = False
                self._last_finished = self._clock()

    def _request(self, prompt: str) -> Decision:
        try:
            text = self._oracle.generate(prompt)
        except (LlmError, HttpError) as exc:
            raise OracleUnavailable("oracle request failed: {}".format(exc)) from exc
        except Exception as exc:
            logger.exception("oracle raised an unexpected error")
            raise OracleUnavailable(
                "oracle request failed: {}: {}".format(type(exc).__name__, exc)
            ) from exc
        if not text or not text.strip():
            raise OracleUnavailable("oracle returned an empty response")
        try:
            decision = parse_decision_text(text)
        except SchemaError as exc:
            logger.warning("unparseable oracle response: %s", text[:200])
            raise OracleUnavailable("oracle response rejected: {}".format(exc)) from exc
        logger.info(
            "decision action=%s complete=%s", decision.name or "-", decision.is_complete
        )
        return decision
