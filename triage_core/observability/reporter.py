"""
Generate human-readable triage reports in Markdown format.

Report sections:
- Header with run metadata and the decision tree used
- Summary table with decode counts
- Outcome distribution
- Workflow transition checks
- Unresolved vectors and errors
"""
from datetime import datetime
from typing import List, Optional
from pathlib import Path
from tabulate import tabulate

from decisioning.vector import SSVCObject
from .metrics import TriageMetrics


class TriageReporter:
    """
    Generates Markdown reports from triage metrics.

    Tables use the GitHub flavour so reports render in code review tools.
    """

    def generate_report(
        self,
        metrics: TriageMetrics,
        results: Optional[List[SSVCObject]] = None
    ) -> str:
        """
        Generate full run report in Markdown format.

        Args:
            metrics: TriageMetrics from a completed run
            results: Decoded vectors, listed individually when given

        Returns:
            Markdown-formatted report as string
        """
        lines = []

        lines.append("# Triage Report")
        lines.append(f"**Run ID:** {metrics.run_id}")
        lines.append(f"**Started:** {metrics.started_at.isoformat()}")
        if metrics.tree_title:
            lines.append(f"**Decision Tree:** {metrics.tree_title} {metrics.tree_version}".rstrip())
        if metrics.completed_at:
            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            lines.append(f"**Duration:** {duration:.1f} seconds")
        lines.append("")

        lines.append("## Summary")
        summary_data = [
            ["Vectors", metrics.vectors_total],
            ["Resolved", metrics.vectors_resolved],
            ["Unresolved", metrics.vectors_unresolved],
            ["Errors", metrics.errors],
        ]
        lines.append(tabulate(summary_data, headers=["Metric", "Value"], tablefmt="github"))
        lines.append("")

        if metrics.outcome_counts:
            lines.append("## Outcomes")
            outcome_data = [[k, v] for k, v in sorted(metrics.outcome_counts.items())]
            lines.append(tabulate(outcome_data, headers=["Outcome", "Count"], tablefmt="github"))
            lines.append("")

        if metrics.transitions_allowed or metrics.transitions_denied:
            lines.append("## Workflow Transition Checks")
            edges = sorted(set(metrics.transitions_allowed) | set(metrics.transitions_denied))
            trans_data = [
                [f"{k[0]} → {k[1]}", metrics.transitions_allowed.get(k, 0), metrics.transitions_denied.get(k, 0)]
                for k in edges
            ]
            lines.append(tabulate(trans_data, headers=["Transition", "Allowed", "Denied"], tablefmt="github"))
            lines.append("")

        if results:
            lines.append("## Vectors")
            vector_data = []
            for result in results:
                status = "✓" if result.is_resolved else "✗"
                vector_data.append([status, result.vector, result.label or "-", result.color or "-"])
            lines.append(tabulate(vector_data, headers=["Status", "Vector", "Outcome", "Color"], tablefmt="github"))
            lines.append("")

        if metrics.issues:
            lines.append("## Errors")
            issue_data = [[i["type"], i["message"]] for i in metrics.issues]
            lines.append(tabulate(issue_data, headers=["Type", "Message"], tablefmt="github"))
            lines.append("")

        return "\n".join(lines)

    def save_report(self, report: str, output_dir: Path) -> Path:
        """
        Save report to file with timestamp.

        Returns:
            Path to saved report file
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        filepath = output_dir / f"triage-report-{timestamp}.md"
        filepath.write_text(report)
        return filepath
