"""
Metrics collection for triage runs.

TriageMetrics tracks what a single run (one CLI invocation or one
batch of vectors) did:
- how many vectors were decoded and how many resolved to an outcome
- the outcome distribution
- workflow transition checks, allowed and denied per edge
- errors encountered

Transition counters use (from_state, to_state) tuple keys; to_dict()
flattens them to "from->to" strings for JSON.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Any
from collections import defaultdict


@dataclass
class TriageMetrics:
    """
    Metrics for a single triage run.

    Serializable with to_dict() for reports and JSON output.
    """
    run_id: str
    started_at: datetime
    completed_at: datetime = None

    tree_title: str = ""
    tree_version: str = ""

    vectors_total: int = 0
    vectors_resolved: int = 0
    errors: int = 0

    # Key: outcome label, Value: count
    outcome_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Key: (from_state, to_state), Value: count
    transitions_allowed: Dict[tuple, int] = field(default_factory=lambda: defaultdict(int))
    transitions_denied: Dict[tuple, int] = field(default_factory=lambda: defaultdict(int))

    issues: List[Dict] = field(default_factory=list)

    @property
    def vectors_unresolved(self) -> int:
        return self.vectors_total - self.vectors_resolved

    def record_decode(self, label: str):
        """
        Record a decoded vector.

        Args:
            label: Outcome label, empty if the vector did not resolve
        """
        self.vectors_total += 1
        if label:
            self.vectors_resolved += 1
            self.outcome_counts[label] += 1

    def record_transition_check(self, from_state: str, to_state: str, allowed: bool):
        """Record the result of a workflow transition check."""
        if allowed:
            self.transitions_allowed[(from_state, to_state)] += 1
        else:
            self.transitions_denied[(from_state, to_state)] += 1

    def record_error(self, error: str, context: Dict = None):
        """
        Record an error encountered during the run.

        Args:
            error: Error message
            context: Optional dict with additional context (e.g., the vector)
        """
        self.errors += 1
        self.issues.append({
            "type": "error",
            "message": error,
            "context": context or {}
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "tree_title": self.tree_title,
            "tree_version": self.tree_version,
            "vectors_total": self.vectors_total,
            "vectors_resolved": self.vectors_resolved,
            "vectors_unresolved": self.vectors_unresolved,
            "errors": self.errors,
            "outcome_counts": dict(self.outcome_counts),
            "transitions_allowed": {f"{k[0]}->{k[1]}": v for k, v in self.transitions_allowed.items()},
            "transitions_denied": {f"{k[0]}->{k[1]}": v for k, v in self.transitions_denied.items()},
            "issues": self.issues
        }
