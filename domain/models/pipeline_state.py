# domain/models/pipeline_state.py
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Generic, TypeVar
from datetime import datetime
from enum import Enum

T = TypeVar("T")

class RunStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

class PipelinePhase(Enum):
    PLANNING = "planning"
    WORKERS = "workers"
    SYNTHESIS = "synthesis"
    EVALUATION = "evaluation"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]

_PHASE_LABELS = {
    PipelinePhase.PLANNING: "Phase 1: Planning",
    PipelinePhase.WORKERS: "Phase 2: Parallel workers",
    PipelinePhase.SYNTHESIS: "Phase 3: Synthesis",
    PipelinePhase.EVALUATION: "Phase 4: Quality gate",
}

@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one concurrently executed task: a value or the error it raised"""
    ok: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Settled[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Settled[T]":
        return cls(ok=False, error=error)

@dataclass(frozen=True)
class ProgressEvent:
    phase: str
    detail: Optional[str]
    recorded_at: datetime

@dataclass(frozen=True)
class AnalysisRunSnapshot:
    """Immutable snapshot of a persisted analysis run"""
    run_id: str
    status: RunStatus
    project_root: str
    scan_data: Dict[str, Any]
    progress: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime
    result: Optional[Dict[str, Any]] = None
    quality_scores: Optional[List[float]] = None
    error_message: Optional[str] = None
