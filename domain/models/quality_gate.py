# domain/models/quality_gate.py
from dataclasses import dataclass, field
from typing import List
from enum import Enum

class LoopState(Enum):
    EVALUATING = "evaluating"
    OPTIMIZING = "optimizing"
    DONE = "done"

@dataclass(frozen=True)
class EvaluationResult:
    """Immutable quality assessment for one loop iteration"""
    quality_score: float
    has_entry_points: bool
    has_implementation_guidelines: bool
    has_relevant_recommendations: bool
    specific_issues: List[str] = field(default_factory=list)
    improvement_suggestions: List[str] = field(default_factory=list)
    from_fallback: bool = False

@dataclass(frozen=True)
class LoopOutcome:
    """What the evaluator-optimizer loop did, for logging and status reporting"""
    evaluations: int
    optimizations: int
    gate_passed: bool
    scores: List[float]
