"""Result types produced by a probe run"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

STEP_CONNECT = "connect"
STEP_PING = "ping"
STEP_CLUSTER_INFO = "cluster_info"
STEP_WRITE_READ = "write_read"
STEP_CLEANUP = "cleanup"

STEP_ORDER = (STEP_CONNECT, STEP_PING, STEP_CLUSTER_INFO, STEP_WRITE_READ, STEP_CLEANUP)

# Steps whose outcome decides the overall verdict; cleanup is informational
VERDICT_STEPS = (STEP_CONNECT, STEP_PING, STEP_CLUSTER_INFO, STEP_WRITE_READ)


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single probe step"""
    name: str
    status: StepStatus
    detail: str = ""
    duration: float = 0.0          # seconds
    error: Optional[str] = None    # error kind, e.g. "CommandError"

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "detail": self.detail,
            "duration_ms": round(self.duration * 1000, 3),
            "error": self.error,
        }


@dataclass(frozen=True)
class Report:
    """Aggregate outcome of one probe run"""
    endpoint: str
    steps: Tuple[StepResult, ...]
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> StepStatus:
        by_name = {step.name: step for step in self.steps}
        for name in VERDICT_STEPS:
            step = by_name.get(name)
            if step is None or not step.ok:
                return StepStatus.FAILED
        return StepStatus.OK

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.OK

    @property
    def duration(self) -> float:
        return sum(step.duration for step in self.steps)

    def step(self, name: str) -> StepResult:
        for result in self.steps:
            if result.name == name:
                return result
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "duration_ms": round(self.duration * 1000, 3),
            "steps": [step.to_dict() for step in self.steps],
        }
