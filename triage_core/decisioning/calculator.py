"""
SSVC calculator.

Evaluates analyst choices against a parsed decision tree:
- complex decisions without a direct choice are derived from their
  children's choices through the option child combinations
- the outcome is looked up in the decisions table, whose rows map
  decision labels to option labels
- the walk is encoded as a vector
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from .tree import (
    DecisionOption,
    DecisionPoint,
    ParsedDecisionTree,
    get_option_with_key,
    get_option_with_label,
)
from .vector import SSVCObject, VectorCodec, encode_timestamp


logger = logging.getLogger(__name__)


class IncompleteSelectionError(ValueError):
    """Raised when a main decision has no usable choice."""


class OutcomeNotFoundError(LookupError):
    """Raised when no decisions table row matches the choices."""


@dataclass(frozen=True)
class Evaluation:
    """Outcome of a calculator run."""
    outcome: DecisionOption
    path: Tuple[Tuple[DecisionPoint, DecisionOption], ...]
    vector: str
    derived_from_children: bool = False

    def as_ssvc_object(self) -> SSVCObject:
        return SSVCObject(
            vector=self.vector,
            label=self.outcome.label,
            color=self.outcome.color or "",
        )


class SSVCCalculator:
    """
    Walks a decision tree with a set of analyst choices.

    Choices are given per decision label, as option key or option label.
    """

    def __init__(self, tree: ParsedDecisionTree, codec: Optional[VectorCodec] = None):
        self.tree = tree
        self.codec = codec or VectorCodec(tree)

    def evaluate(
        self,
        selections: Mapping[str, str],
        now: Optional[datetime] = None,
    ) -> Evaluation:
        """
        Evaluate choices and encode the resulting vector.

        Args:
            selections: Mapping of decision label to option key or label
            now: Timestamp to embed; defaults to the current time

        Returns:
            Evaluation with outcome option, walked path and vector

        Raises:
            IncompleteSelectionError: If a main decision cannot be resolved
            OutcomeNotFoundError: If no decisions table row matches
        """
        final = self.tree.final_decision
        if final is None:
            raise IncompleteSelectionError("Decision tree has no main decisions")

        resolved: Dict[str, DecisionOption] = {}
        derived = False
        for decision in self.tree.main_decisions[:-1]:
            option = self.pick_option(decision, selections.get(decision.label))
            if option is None and decision.is_complex:
                option = self.resolve_complex(decision, selections)
                if option is not None:
                    derived = True
            if option is None:
                raise IncompleteSelectionError(f"No choice for decision '{decision.label}'")
            resolved[decision.label] = option

        outcome = self.pick_option(final, selections.get(final.label))
        if outcome is None:
            outcome = self.lookup_outcome(resolved)
        else:
            logger.info(f"Outcome '{outcome.label}' chosen directly for '{final.label}'")

        path = self._build_path(resolved, outcome, selections, derived)
        vector = self.codec.encode(path, timestamp=encode_timestamp(now))

        return Evaluation(
            outcome=outcome,
            path=path,
            vector=vector,
            derived_from_children=len(path) == len(self.tree.decision_points) and derived,
        )

    def resolve_complex(
        self,
        decision: DecisionPoint,
        selections: Mapping[str, str],
    ) -> Optional[DecisionOption]:
        """
        Derive the option of a complex decision from its children's choices.

        Returns None if a child has no valid choice or no combination matches.
        """
        child_options: Dict[str, DecisionOption] = {}
        for child in self.tree.children_of(decision):
            option = self.pick_option(child, selections.get(child.label))
            if option is None:
                return None
            child_options[child.label] = option

        for option in decision.options:
            for combination in option.child_combinations:
                if combination and all(
                    _item_matches(item, child_options.get(item.child_label))
                    for item in combination
                ):
                    logger.debug(f"Derived '{option.label}' for '{decision.label}' from children")
                    return option

        logger.debug(f"No child combination of '{decision.label}' matches")
        return None

    def lookup_outcome(self, resolved: Mapping[str, DecisionOption]) -> DecisionOption:
        """
        Find the outcome option in the decisions table.

        Raises:
            OutcomeNotFoundError: If no row matches or the row names an unknown option
        """
        final = self.tree.final_decision
        for row in self._table_rows():
            if all(row.get(label) == option.label for label, option in resolved.items()):
                outcome = get_option_with_label(final, row.get(final.label))
                if outcome is None:
                    raise OutcomeNotFoundError(
                        f"Decisions table names unknown outcome '{row.get(final.label)}'"
                    )
                return outcome

        choices = ", ".join(f"{label}={option.label}" for label, option in resolved.items())
        raise OutcomeNotFoundError(f"No decisions table row matches: {choices}")

    @staticmethod
    def pick_option(decision: DecisionPoint, choice: Optional[str]) -> Optional[DecisionOption]:
        """Resolve a choice as option key first, then as option label."""
        if choice is None:
            return None
        return get_option_with_key(decision, choice) or get_option_with_label(decision, choice)

    def _build_path(
        self,
        resolved: Mapping[str, DecisionOption],
        outcome: DecisionOption,
        selections: Mapping[str, str],
        derived: bool,
    ) -> Tuple[Tuple[DecisionPoint, DecisionOption], ...]:
        final = self.tree.final_decision
        main_path = [(d, resolved[d.label]) for d in self.tree.main_decisions[:-1]]
        main_path.append((final, outcome))
        if not derived:
            return tuple(main_path)

        # Full path over every declared point, only when each one has a choice
        full_path: List[Tuple[DecisionPoint, DecisionOption]] = []
        for point in self.tree.decision_points:
            if point.label == final.label:
                option = outcome
            else:
                option = resolved.get(point.label) or self.pick_option(
                    point, selections.get(point.label)
                )
            if option is None:
                logger.debug(f"'{point.label}' has no choice; encoding main decisions only")
                return tuple(main_path)
            full_path.append((point, option))
        return tuple(full_path)

    def _table_rows(self) -> List[Mapping[str, Any]]:
        table = self.tree.decisions_table
        if not isinstance(table, list):
            return []
        return [row for row in table if isinstance(row, Mapping)]


def _item_matches(item, option: Optional[DecisionOption]) -> bool:
    if option is None:
        return False
    return option.label in item.child_option_labels or option.key in item.child_option_keys
