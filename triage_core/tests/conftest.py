"""
Shared pytest fixtures for triage tests.

Provides a small decision tree with one complex decision, the bundled
CISA Coordinator tree, and helpers to write tree documents to disk.
"""
import copy
import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from decisioning import VectorCodec, parse_decision_tree
from ingestion import DEFAULT_TREE_PATH, load_document_file
from workflow import WorkflowStateMachine


MINI_TREE = {
    "lang": "en",
    "title": "Mini Coordinator",
    "version": "1.0.0",
    "decision_points": [
        {
            "label": "Exploitation",
            "key": "E",
            "decision_type": "simple",
            "options": [
                {"label": "none", "key": "N", "description": "No exploitation"},
                {"label": "public PoC", "key": "P", "description": "Proof of concept"},
                {"label": "active", "key": "A", "description": "Exploited in the wild"},
            ],
        },
        {
            "label": "Prevalence",
            "key": "P",
            "decision_type": "simple",
            "options": [
                {"label": "low", "key": "L", "description": ""},
                {"label": "high", "key": "H", "description": ""},
            ],
        },
        {
            "label": "Impact",
            "key": "I",
            "decision_type": "simple",
            "options": [
                {"label": "low", "key": "L", "description": ""},
                {"label": "high", "key": "H", "description": ""},
            ],
        },
        {
            "label": "Mission",
            "key": "M",
            "decision_type": "complex",
            "children": [{"label": "Prevalence"}, {"label": "Impact"}],
            "options": [
                {
                    "label": "Low",
                    "key": "L",
                    "description": "Both low",
                    "child_combinations": [
                        [
                            {"child_label": "Prevalence", "child_option_labels": ["low"]},
                            {"child_label": "Impact", "child_option_labels": ["low"]},
                        ]
                    ],
                },
                {
                    "label": "High",
                    "key": "H",
                    "description": "Either high",
                    "child_combinations": [
                        [
                            {"child_label": "Prevalence", "child_option_labels": ["high"]},
                            {"child_label": "Impact", "child_option_labels": ["low", "high"]},
                        ],
                        [
                            {"child_label": "Prevalence", "child_key": "P", "child_option_labels": [],
                             "child_option_keys": ["L"]},
                            {"child_label": "Impact", "child_key": "I", "child_option_labels": [],
                             "child_option_keys": ["H"]},
                        ],
                    ],
                },
            ],
        },
        {
            "label": "Decision",
            "key": "D",
            "decision_type": "final",
            "options": [
                {"label": "Track", "key": "T", "description": "", "color": "#28a745"},
                {"label": "Act", "key": "C", "description": "", "color": "#dc3545"},
            ],
        },
    ],
    "decisions_table": [
        {"Exploitation": "none", "Mission": "Low", "Decision": "Track"},
        {"Exploitation": "none", "Mission": "High", "Decision": "Track"},
        {"Exploitation": "public PoC", "Mission": "Low", "Decision": "Track"},
        {"Exploitation": "public PoC", "Mission": "High", "Decision": "Act"},
        {"Exploitation": "active", "Mission": "Low", "Decision": "Act"},
        {"Exploitation": "active", "Mission": "High", "Decision": "Act"},
    ],
}

TIMESTAMP = "2024-05-02T14:23:11Z"


@pytest.fixture
def mini_document():
    """Fresh copy of the mini tree document, safe to modify."""
    return copy.deepcopy(MINI_TREE)


@pytest.fixture
def mini_tree(mini_document):
    return parse_decision_tree(mini_document)


@pytest.fixture
def mini_codec(mini_tree):
    return VectorCodec(mini_tree)


@pytest.fixture
def cisa_tree():
    """The bundled CISA Coordinator tree."""
    return parse_decision_tree(load_document_file(DEFAULT_TREE_PATH))


@pytest.fixture
def state_machine():
    return WorkflowStateMachine()


@pytest.fixture
def write_tree(tmp_path):
    """
    Write a tree document to a temporary JSON file.

    Returns:
        Function taking the document and returning the file path
    """
    def _write(document, name="tree.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path
    return _write
