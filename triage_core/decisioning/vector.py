"""
SSVC vector encoding and decoding.

Vector layout:
    <scheme>/<key>:<option>/.../<key>:<option>/<timestamp>/

The scheme marker and the two trailing segments (timestamp and the empty
segment after the final slash) are metadata. The fragments in between form
the path of decisions taken.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
import logging

from .tree import DecisionOption, DecisionPoint, ParsedDecisionTree, get_option_with_key


logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "SSVCv2"
SEGMENT_SEPARATOR = "/"
PAIR_SEPARATOR = ":"


@dataclass(frozen=True)
class SSVCObject:
    """Decoded vector with the display metadata of its outcome."""
    vector: str
    label: str = ""
    color: str = ""

    @property
    def is_resolved(self) -> bool:
        return bool(self.label)


def encode_timestamp(now: Optional[datetime] = None) -> str:
    """
    Format an instant as ISO-8601 UTC with second precision and a 'Z' suffix.

    Sub-second digits are dropped, not rounded.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=0).isoformat() + "Z"


def split_path(vector: str) -> List[Tuple[str, str]]:
    """
    Extract the (short_key, option_key) pairs of a vector.

    Fragments without a ':' yield an empty option key. Vectors with fewer
    than three segments yield an empty path.
    """
    if not isinstance(vector, str):
        return []
    pairs = []
    for fragment in vector.split(SEGMENT_SEPARATOR)[1:-2]:
        # Only the text between the first and second ':' is the option key
        parts = fragment.split(PAIR_SEPARATOR)
        pairs.append((parts[0], parts[1] if len(parts) > 1 else ""))
    return pairs


class VectorCodec:
    """
    Encodes and decodes vectors against one parsed decision tree.

    The codec only resolves the option of the final path fragment. Which
    decision it belongs to is inferred from the path length: a path as long
    as the main decisions ends at the last main decision; a path as long as
    all decision points ends at the last declared point. When both counts
    are equal the main decision interpretation is used.
    """

    def __init__(self, tree: ParsedDecisionTree, scheme: str = DEFAULT_SCHEME):
        self.tree = tree
        self.scheme = scheme

    def decode(self, vector: str) -> SSVCObject:
        """
        Decode a vector into its outcome label and color.

        Never raises. Unresolvable vectors return empty label and color,
        with the vector echoed back unchanged.
        """
        path = split_path(vector)
        if not path:
            logger.debug(f"Vector has no decision path: {vector!r}")
            return SSVCObject(vector=vector)

        option_key = path[-1][1]
        decision = self._resolve_decision(len(path))
        if decision is None:
            logger.debug(
                f"Path length {len(path)} matches neither {len(self.tree.main_decisions)} "
                f"main decisions nor {len(self.tree.decision_points)} decision points"
            )
            return SSVCObject(vector=vector)

        option = get_option_with_key(decision, option_key)
        if option is None:
            logger.debug(f"No option '{option_key}' in decision '{decision.label}'")
            return SSVCObject(vector=vector)

        return SSVCObject(vector=vector, label=option.label, color=option.color or "")

    def encode(
        self,
        selections: Sequence[Tuple[DecisionPoint, DecisionOption]],
        timestamp: Optional[str] = None,
    ) -> str:
        """
        Build a vector from an ordered sequence of (decision, option) pairs.

        Args:
            selections: Decisions taken, in walk order
            timestamp: Pre-formatted timestamp; defaults to the current time

        Returns:
            Vector string ending with a trailing separator
        """
        fragments = [self.scheme]
        fragments.extend(
            f"{decision.key}{PAIR_SEPARATOR}{option.key}" for decision, option in selections
        )
        fragments.append(timestamp or encode_timestamp())
        return SEGMENT_SEPARATOR.join(fragments) + SEGMENT_SEPARATOR

    def _resolve_decision(self, path_length: int) -> Optional[DecisionPoint]:
        main_decisions = self.tree.main_decisions
        decision_points = self.tree.decision_points

        if main_decisions and path_length == len(main_decisions):
            return main_decisions[-1]
        if decision_points and path_length == len(decision_points):
            return decision_points[-1]
        return None
