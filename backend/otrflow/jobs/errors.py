"""
Pipeline error types.

All errors inherit from PipelineError for easy catching.
"""


class PipelineError(Exception):
    """Base exception for all pipeline failures."""
    pass


class InvalidStageTransitionError(PipelineError):
    """Raised when an asset would skip or go back a stage."""

    def __init__(self, current_stage: str, target_stage: str):
        self.current_stage = current_stage
        self.target_stage = target_stage
        super().__init__(f"Invalid stage transition: {current_stage} -> {target_stage}")


class RunAbortedError(PipelineError):
    """Raised inside a job when the working directory became unusable mid-run."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Run aborted: {reason}")
