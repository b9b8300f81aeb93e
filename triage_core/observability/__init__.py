"""
Observability layer for triage runs.

Main exports:
- TriageMetrics: Tracks metrics for a triage run
- TriageReporter: Generates Markdown reports
"""
from .metrics import TriageMetrics
from .reporter import TriageReporter

__all__ = [
    "TriageMetrics",
    "TriageReporter",
]
