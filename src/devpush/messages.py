from datetime import datetime, timedelta
from enum import Enum

from pydantic import Field

from devpush.changes import Batch, ChangeEvent
from devpush.model import Model


class Outcome(Enum):
    Success = "success"
    Failed = "failed"


class Message(Model):
    timestamp: datetime = Field(default_factory=datetime.now)


class ChangeDetected(Message):
    change: ChangeEvent


class BatchSkipped(Message):
    batch: Batch


class ExecutionStarted(Message):
    batch: Batch
    pid: int
    attempt: int


class ExecutionCompleted(Message):
    batch: Batch
    pid: int
    exit_code: int
    duration: timedelta


class ExecutionOutput(Message):
    batch: Batch
    text: str


class ExecutionFailed(Message):
    batch: Batch
    attempt: int
    reason: str


class BatchFinished(Message):
    batch: Batch
    outcome: Outcome


class StartupStep(Message):
    description: str
    success: str
    exit_code: int
    output: str = ""


class CompilerOutput(Message):
    text: str


class Debug(Message):
    text: str
