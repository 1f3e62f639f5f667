"""
Pipeline orchestration: jobs, stage transitions and the run engine.
"""

from .errors import PipelineError, InvalidStageTransitionError, RunAbortedError
from .models import Job, JobOutcome, FailureKind, RunStage, RunSummary
from .state import is_final, can_transition, validate_stage_transition
from .engine import Pipeline, ALL_STAGES, classify_failure

__all__ = [
    # Errors
    "PipelineError",
    "InvalidStageTransitionError",
    "RunAbortedError",
    # Models
    "Job",
    "JobOutcome",
    "FailureKind",
    "RunStage",
    "RunSummary",
    # State
    "is_final",
    "can_transition",
    "validate_stage_transition",
    # Engine
    "Pipeline",
    "ALL_STAGES",
    "classify_failure",
]
