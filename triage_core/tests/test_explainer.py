"""
Tests for outcome explainer.

Validates explanation generation from vectors.
"""
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from decisioning import OutcomeExplainer


VECTOR = "SSVCv2/E:A/M:H/D:C/2024-05-02T14:23:11Z/"


class TestOutcomeExplainer:
    """Test explanation generation."""

    def test_resolved_explanation(self, mini_tree):
        explainer = OutcomeExplainer(mini_tree)

        explanation = explainer.explain(VECTOR)

        assert explanation.startswith("Outcome Act")
        assert "Exploitation: active" in explanation
        assert "Mission: High" in explanation
        assert "2024-05-02 14:23:11" in explanation

    def test_unresolved_explanation(self, mini_tree):
        explainer = OutcomeExplainer(mini_tree)

        explanation = explainer.explain("SSVCv2/E:A/2024-05-02T14:23:11Z/")

        assert "could not be determined" in explanation
        assert "Mini Coordinator" in explanation

    def test_empty_vector(self, mini_tree):
        explanation = OutcomeExplainer(mini_tree).explain("")
        assert "Choices: none" in explanation

    def test_describe_path_unknown_keys(self, mini_tree):
        steps = OutcomeExplainer(mini_tree).describe_path("SSVCv2/X:A/E:Z/2024-05-02T14:23:11Z/")
        assert steps == [
            {'key': 'X', 'decision': 'unknown', 'option_key': 'A', 'option': 'unknown'},
            {'key': 'E', 'decision': 'Exploitation', 'option_key': 'Z', 'option': 'unknown'},
        ]

    def test_unparseable_timestamp_kept(self, mini_tree):
        explanation = OutcomeExplainer(mini_tree).explain("SSVCv2/E:A/M:H/D:C/yesterday/")
        assert "Recorded: yesterday" in explanation

    def test_custom_templates(self, mini_tree):
        explainer = OutcomeExplainer(mini_tree, templates={
            'RESOLVED': "{outcome} ({color})",
            'UNRESOLVED': "unknown",
        })
        assert explainer.explain(VECTOR) == "Act (#dc3545)"

    def test_missing_template_variable_falls_back(self, mini_tree):
        explainer = OutcomeExplainer(mini_tree, templates={'RESOLVED': "{severity}"})
        assert explainer.explain(VECTOR) == "Outcome: Act."

    def test_explain_with_context(self, mini_tree):
        context = OutcomeExplainer(mini_tree).explain_with_context(VECTOR)

        assert context['label'] == "Act"
        assert context['color'] == "#dc3545"
        assert context['vector'] == VECTOR
        assert [s['decision'] for s in context['steps']] == ["Exploitation", "Mission", "Decision"]
