"""
Explanation generator for SSVC vectors.

Produces human-readable explanations of a vector by naming each decision
taken and the resulting outcome.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from .tree import ParsedDecisionTree, get_option_with_key
from .vector import VectorCodec, split_path


logger = logging.getLogger(__name__)


class OutcomeExplainer:
    """
    Generates analyst-facing explanations for SSVC vectors.

    Uses templates keyed by whether the outcome could be resolved.
    """

    DEFAULT_TEMPLATES = {
        'RESOLVED': (
            "Outcome {outcome} based on {choices}. Recorded: {recorded_at}."
        ),
        'UNRESOLVED': (
            "Outcome could not be determined for {tree_title}. Choices: {choices}."
        ),
    }

    def __init__(
        self,
        tree: ParsedDecisionTree,
        templates: Optional[Dict[str, str]] = None
    ):
        """
        Initialize explainer.

        Args:
            tree: Parsed decision tree the vectors belong to
            templates: Custom templates by outcome status.
                      If None, uses default templates.
        """
        self.tree = tree
        self.codec = VectorCodec(tree)
        self.templates = templates or self.DEFAULT_TEMPLATES

    def describe_path(self, vector: str) -> List[Dict[str, str]]:
        """
        Name every decision in the vector path.

        Short keys and option keys that do not exist in the tree are
        reported as 'unknown'.
        """
        steps = []
        for short_key, option_key in split_path(vector):
            decision = next(
                (p for p in self.tree.decision_points if p.key == short_key), None
            )
            option = get_option_with_key(decision, option_key) if decision else None
            steps.append({
                'key': short_key,
                'decision': decision.label if decision else 'unknown',
                'option_key': option_key,
                'option': option.label if option else 'unknown',
            })
        return steps

    def explain(self, vector: str) -> str:
        """Generate a one-line explanation of a vector."""
        result = self.codec.decode(vector)
        status = 'RESOLVED' if result.is_resolved else 'UNRESOLVED'
        template = self.templates.get(status, '')

        values = {
            'outcome': result.label,
            'color': result.color or 'none',
            'choices': self._format_choices(self.describe_path(vector)),
            'recorded_at': self._recorded_at(vector),
            'tree_title': self.tree.title or 'decision tree',
        }

        try:
            return template.format(**values).strip()
        except KeyError as e:
            logger.warning(f"Missing template variable {e} for status {status}")
            return f"Outcome: {result.label or 'unknown'}."

    def explain_with_context(self, vector: str) -> Dict[str, Any]:
        """
        Generate explanation plus structured details.

        Returns:
            Dictionary with explanation, outcome fields and named steps
        """
        result = self.codec.decode(vector)
        return {
            'explanation': self.explain(vector),
            'vector': result.vector,
            'label': result.label,
            'color': result.color,
            'steps': self.describe_path(vector),
        }

    def _format_choices(self, steps: List[Dict[str, str]]) -> str:
        if not steps:
            return 'none'
        return ', '.join(f"{s['decision']}: {s['option']}" for s in steps)

    def _recorded_at(self, vector: str) -> str:
        segments = vector.split('/') if isinstance(vector, str) else []
        if len(segments) < 3:
            return 'unknown date'
        raw = segments[-2]
        try:
            dt = datetime.fromisoformat(raw.replace('Z', '+00:00'))
            return dt.strftime('%Y-%m-%d %H:%M:%S')
        except ValueError:
            return raw or 'unknown date'
