"""Public API surface for Python callers."""

from repo_triage.adapters.observability import configure_runtime_logging
from repo_triage.adapters.settings import LogSettings, TriageSettings
from repo_triage.api.python_interface import (
    AnalysisDone,
    AnalysisFailed,
    AnalysisRunResult,
    TriageService,
)

__all__ = [
    "AnalysisDone",
    "AnalysisFailed",
    "AnalysisRunResult",
    "LogSettings",
    "TriageService",
    "TriageSettings",
    "configure_runtime_logging",
]
