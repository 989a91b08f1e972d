from .model import Defaults, Job, ParseWarning, Step, Workflow
from .pipeline import load_pipeline
from .report import RunReport, StepResult, Summary
from .runner import RunOptions, run_workflows

__all__ = [
    "Defaults",
    "Job",
    "ParseWarning",
    "Step",
    "Workflow",
    "load_pipeline",
    "RunOptions",
    "run_workflows",
    "RunReport",
    "StepResult",
    "Summary",
]
