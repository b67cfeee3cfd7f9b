from .prompts.step import build_step_prompt
from .service import DecisionOracleClient, LlmOracle

__all__ = ["DecisionOracleClient", "LlmOracle", "build_step_prompt"]
