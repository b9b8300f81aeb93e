"""
SSVC decisioning layer.

Parses stakeholder-specific decision trees, evaluates analyst choices
and encodes/decodes the resulting vectors.
"""
from .tree import (
    ChildCombinationItem,
    ChildRef,
    DecisionOption,
    DecisionPoint,
    DecisionTreeDocument,
    ParsedDecisionTree,
    get_decision,
    get_option_with_key,
    get_option_with_label,
    parse_decision_tree,
)
from .vector import SSVCObject, VectorCodec, encode_timestamp, split_path
from .calculator import (
    Evaluation,
    IncompleteSelectionError,
    OutcomeNotFoundError,
    SSVCCalculator,
)
from .explainer import OutcomeExplainer


__all__ = [
    'ChildCombinationItem',
    'ChildRef',
    'DecisionOption',
    'DecisionPoint',
    'DecisionTreeDocument',
    'ParsedDecisionTree',
    'get_decision',
    'get_option_with_key',
    'get_option_with_label',
    'parse_decision_tree',
    'SSVCObject',
    'VectorCodec',
    'encode_timestamp',
    'split_path',
    'Evaluation',
    'IncompleteSelectionError',
    'OutcomeNotFoundError',
    'SSVCCalculator',
    'OutcomeExplainer',
]
