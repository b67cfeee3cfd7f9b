from .queue import VoiceTask, VoiceTaskQueue, VoiceTaskStatus

__all__ = ["VoiceTask", "VoiceTaskQueue", "VoiceTaskStatus"]
