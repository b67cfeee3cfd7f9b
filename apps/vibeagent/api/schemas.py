from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StartRequest(BaseModel):
    task: str = Field(min_length=1)


class StartResponse(BaseModel):
    state: str
    task: str


class StopResponse(BaseModel):
    stopped: bool
    state: str


class LastResult(BaseModel):
    state: str
    success: bool
    error: Optional[str] = None


class VoiceTaskInfo(BaseModel):
    id: int
    wake_word_detected: bool
    command: Optional[str] = None
    timestamp: float
    status: str
    finished_at: Optional[float] = None
    success: Optional[bool] = None
    error: Optional[str] = None


class StatusResponse(BaseModel):
    state: str
    task: Optional[str] = None
    step: int = 0
    oracle_busy: bool = False
    last_result: Optional[LastResult] = None
    voice_task: Optional[VoiceTaskInfo] = None


class StepInfo(BaseModel):
    step: int
    action: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    success: bool
    timestamp: float
    interaction_type: str
    ui_context: Dict[str, bool] = Field(default_factory=dict)
    error: Optional[str] = None
    note: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class EventInfo(BaseModel):
    seq: int
    kind: str
    message: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float


class EventsResponse(BaseModel):
    events: List[EventInfo]
    last_seq: int


class VoiceEnqueueRequest(BaseModel):
    wake_word_detected: bool = True
    command: Optional[str] = None
