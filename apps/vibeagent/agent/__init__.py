from .runtime import AutomationLoop, LoopConfig, LoopResult, LoopState

__all__ = ["AutomationLoop", "LoopConfig", "LoopResult", "LoopState"]
