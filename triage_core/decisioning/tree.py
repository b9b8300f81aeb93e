"""
SSVC decision tree model and flattening.

A decision tree document lists decision points in declaration order.
Complex decision points delegate to child points referenced by label;
those children are only reachable through their parent and therefore
never appear among the main decisions an analyst walks through.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging


logger = logging.getLogger(__name__)

COMPLEX = "complex"


@dataclass(frozen=True)
class ChildRef:
    """Reference to a child decision point, resolved by label."""
    label: str


@dataclass(frozen=True)
class ChildCombinationItem:
    """One condition of a child combination: child must hold one of the options."""
    child_label: str
    child_option_labels: Tuple[str, ...] = ()
    child_key: Optional[str] = None
    child_option_keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionOption:
    """Selectable option within a decision point."""
    key: str
    label: str
    description: str = ""
    color: Optional[str] = None
    # Each inner tuple is one combination; all of its items must match
    child_combinations: Tuple[Tuple[ChildCombinationItem, ...], ...] = ()


@dataclass(frozen=True)
class DecisionPoint:
    """A single decision in the tree."""
    label: str
    key: str
    decision_type: str = "simple"
    children: Tuple[ChildRef, ...] = ()
    options: Tuple[DecisionOption, ...] = ()

    @property
    def is_complex(self) -> bool:
        return self.decision_type == COMPLEX


@dataclass(frozen=True)
class DecisionTreeDocument:
    """Externally supplied decision tree description."""
    decision_points: Tuple[DecisionPoint, ...]
    decisions_table: Any = field(default_factory=list)
    lang: str = ""
    title: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecisionTreeDocument":
        """
        Build a document from its JSON representation.

        Only the shape is interpreted; values are not checked for
        semantic consistency.
        """
        points = tuple(
            _point_from_dict(point) for point in data.get("decision_points") or []
        )
        return cls(
            decision_points=points,
            decisions_table=data.get("decisions_table") or [],
            lang=data.get("lang", ""),
            title=data.get("title", ""),
            version=data.get("version", ""),
        )


@dataclass(frozen=True)
class ParsedDecisionTree:
    """Result of parsing a document: raw points plus derived main decisions."""
    decision_points: Tuple[DecisionPoint, ...]
    decisions_table: Any
    main_decisions: Tuple[DecisionPoint, ...]
    steps: Tuple[str, ...]
    lang: str = ""
    title: str = ""
    version: str = ""

    @property
    def final_decision(self) -> Optional[DecisionPoint]:
        """The last main decision, which carries the outcome options."""
        return self.main_decisions[-1] if self.main_decisions else None

    def get_decision(self, label: str) -> Optional[DecisionPoint]:
        return get_decision(self.decision_points, label)

    def children_of(self, decision: DecisionPoint) -> List[DecisionPoint]:
        """Resolve the child references of a complex point, skipping dangling ones."""
        resolved = []
        for child in decision.children:
            point = self.get_decision(child.label)
            if point is None:
                logger.debug(f"Child '{child.label}' of '{decision.label}' is not declared")
                continue
            resolved.append(point)
        return resolved


def parse_decision_tree(
    document: Union[DecisionTreeDocument, Mapping[str, Any]]
) -> ParsedDecisionTree:
    """
    Parse a decision tree document and compute its main decisions.

    Pass one collects every label referenced as a child of a complex
    point. Pass two keeps, in document order, every point whose label
    was not collected. Repeated labels keep their first occurrence.

    Args:
        document: DecisionTreeDocument or its dict representation

    Returns:
        ParsedDecisionTree with main decisions and step labels
    """
    if not isinstance(document, DecisionTreeDocument):
        document = DecisionTreeDocument.from_dict(document)

    child_labels = set()
    for point in document.decision_points:
        if point.is_complex:
            child_labels.update(child.label for child in point.children)

    main_decisions = []
    seen = set()
    for point in document.decision_points:
        if point.label in child_labels or point.label in seen:
            continue
        seen.add(point.label)
        main_decisions.append(point)

    steps = tuple(point.label for point in main_decisions)
    logger.debug(
        f"Parsed decision tree '{document.title}': "
        f"{len(document.decision_points)} points, {len(steps)} main decisions"
    )

    return ParsedDecisionTree(
        decision_points=document.decision_points,
        decisions_table=document.decisions_table,
        main_decisions=tuple(main_decisions),
        steps=steps,
        lang=document.lang,
        title=document.title,
        version=document.version,
    )


def get_decision(
    decision_points: Sequence[DecisionPoint], label: str
) -> Optional[DecisionPoint]:
    """Find a decision point by exact label, or None."""
    for point in decision_points:
        if point.label == label:
            return point
    return None


def get_option_with_key(
    decision: DecisionPoint, key: Optional[str]
) -> Optional[DecisionOption]:
    """Find an option of a decision point by exact key, or None."""
    for option in decision.options:
        if option.key == key:
            return option
    return None


def get_option_with_label(
    decision: DecisionPoint, label: Optional[str]
) -> Optional[DecisionOption]:
    """Find an option of a decision point by exact label, or None."""
    for option in decision.options:
        if option.label == label:
            return option
    return None


def _point_from_dict(data: Dict[str, Any]) -> DecisionPoint:
    return DecisionPoint(
        label=data["label"],
        key=data.get("key", ""),
        decision_type=data.get("decision_type", "simple"),
        children=tuple(ChildRef(label=c["label"]) for c in data.get("children") or []),
        options=tuple(_option_from_dict(o) for o in data.get("options") or []),
    )


def _option_from_dict(data: Dict[str, Any]) -> DecisionOption:
    combinations = tuple(
        tuple(
            ChildCombinationItem(
                child_label=item["child_label"],
                child_option_labels=tuple(item.get("child_option_labels") or ()),
                child_key=item.get("child_key"),
                child_option_keys=tuple(item.get("child_option_keys") or ()),
            )
            for item in combination
        )
        for combination in data.get("child_combinations") or []
    )
    return DecisionOption(
        key=data["key"],
        label=data.get("label", ""),
        description=data.get("description", ""),
        color=data.get("color"),
        child_combinations=combinations,
    )
