"""
Workflow state machine for advisory documents.

Gates which workflow transitions a document may undergo based on the
roles of the acting user. The transition table is static data; this
module only answers questions about it and never stores state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple
import logging


logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    """Lifecycle stage of a document."""
    NEW = "new"
    READ = "read"
    ASSESSING = "assessing"
    REVIEW = "review"
    ARCHIVED = "archived"
    DELETED = "deleted"


class Role(str, Enum):
    """Canonical role names. Deployments may map them to other tokens."""
    ADMIN = "admin"
    IMPORTER = "importer"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    AUDITOR = "auditor"


@dataclass(frozen=True)
class WorkflowStateTransition:
    """A guarded edge: any of the roles may move a document from -> to."""
    from_state: str
    to_state: str
    roles: FrozenSet[str]


def _edge(from_state: WorkflowState, to_state: WorkflowState, *roles: Role) -> WorkflowStateTransition:
    return WorkflowStateTransition(
        from_state=from_state.value,
        to_state=to_state.value,
        roles=frozenset(role.value for role in roles),
    )


WORKFLOW_STATES: Tuple[str, ...] = tuple(state.value for state in WorkflowState)
ROLES: Tuple[str, ...] = tuple(role.value for role in Role)

# Declaration order is the order choices are offered in
WORKFLOW_TRANSITIONS: Tuple[WorkflowStateTransition, ...] = (
    _edge(WorkflowState.NEW, WorkflowState.READ, Role.EDITOR),
    _edge(WorkflowState.READ, WorkflowState.ASSESSING, Role.EDITOR),
    _edge(WorkflowState.ASSESSING, WorkflowState.REVIEW, Role.EDITOR),
    _edge(WorkflowState.REVIEW, WorkflowState.ASSESSING, Role.REVIEWER),
    _edge(WorkflowState.REVIEW, WorkflowState.ARCHIVED, Role.REVIEWER),
    _edge(WorkflowState.REVIEW, WorkflowState.DELETED, Role.REVIEWER),
    _edge(WorkflowState.READ, WorkflowState.DELETED, Role.EDITOR, Role.REVIEWER),
    _edge(WorkflowState.ASSESSING, WorkflowState.DELETED, Role.EDITOR, Role.REVIEWER),
)

# States in which commenting is open to everyone (None) or restricted to roles
COMMENTING_ROLES: Dict[str, Optional[FrozenSet[str]]] = {
    WorkflowState.READ.value: None,
    WorkflowState.ASSESSING.value: None,
    WorkflowState.REVIEW.value: frozenset({Role.REVIEWER.value, Role.EDITOR.value, Role.ADMIN.value}),
    WorkflowState.ARCHIVED.value: frozenset({Role.EDITOR.value, Role.ADMIN.value}),
    WorkflowState.DELETED.value: frozenset({Role.ADMIN.value}),
}


class WorkflowStateMachine:
    """
    Validates workflow transitions against the role-guarded table.

    Transition model:
    - new -> read -> assessing -> review (editor)
    - review -> assessing | archived | deleted (reviewer)
    - read | assessing -> deleted (editor or reviewer)
    - archived and deleted are terminal

    A caller holding any one role of an edge may take it. There is no
    blanket admin override.
    """

    def __init__(self, role_aliases: Optional[Mapping[str, str]] = None):
        """
        Initialize state machine.

        Args:
            role_aliases: Optional mapping of canonical role name to the
                          token a deployment uses for it
                          (e.g. {'editor': 'bearbeiter'})
        """
        self.role_aliases = dict(role_aliases or {})
        unknown = set(self.role_aliases) - set(ROLES)
        if unknown:
            raise ValueError(f"Unknown roles in aliases: {', '.join(sorted(unknown))}")

        self.transitions: Tuple[WorkflowStateTransition, ...] = tuple(
            WorkflowStateTransition(t.from_state, t.to_state, self._translate(t.roles))
            for t in WORKFLOW_TRANSITIONS
        )
        self.commenting_roles: Dict[str, Optional[FrozenSet[str]]] = {
            state: self._translate(roles) if roles is not None else None
            for state, roles in COMMENTING_ROLES.items()
        }

    def is_transition_allowed(
        self,
        roles: Iterable[str],
        from_state: str,
        to_state: str
    ) -> bool:
        """
        Check whether any of the roles may move a document from -> to.

        Args:
            roles: Role tokens held by the caller
            from_state: Current workflow state
            to_state: Requested workflow state

        Returns:
            True if a matching edge grants one of the roles
        """
        held = self._role_set(roles)
        from_state, to_state = _state_value(from_state), _state_value(to_state)

        for transition in self.transitions:
            if (transition.from_state == from_state
                    and transition.to_state == to_state
                    and transition.roles & held):
                return True

        logger.debug(f"Transition denied: {from_state} -> {to_state} for roles {sorted(held)}")
        return False

    def list_allowed_transitions(
        self,
        roles: Iterable[str],
        from_state: str
    ) -> Tuple[WorkflowStateTransition, ...]:
        """
        Get the transitions the roles may take from a state, in table order.
        """
        held = self._role_set(roles)
        from_state = _state_value(from_state)
        return tuple(
            t for t in self.transitions
            if t.from_state == from_state and t.roles & held
        )

    def transition_roles(self, from_state: str, to_state: str) -> FrozenSet[str]:
        """Roles that may perform a transition; empty if no edge exists."""
        from_state, to_state = _state_value(from_state), _state_value(to_state)
        for transition in self.transitions:
            if transition.from_state == from_state and transition.to_state == to_state:
                return transition.roles
        return frozenset()

    def is_terminal_state(self, state: str) -> bool:
        """Check if no transition leaves the state."""
        state = _state_value(state)
        if state not in WORKFLOW_STATES:
            return False
        return not any(t.from_state == state for t in self.transitions)

    def is_commenting_allowed(self, roles: Iterable[str], state: str) -> bool:
        """Check whether the roles may comment on a document in a state."""
        state = _state_value(state)
        if state not in self.commenting_roles:
            return False
        allowed = self.commenting_roles[state]
        if allowed is None:
            return True
        return bool(allowed & self._role_set(roles))

    def describe_transition(
        self,
        roles: Iterable[str],
        from_state: str,
        to_state: str
    ) -> Dict[str, Any]:
        """
        Describe a transition request with metadata.

        Returns:
            Dictionary with transition details and validity
        """
        held = self._role_set(roles)
        required = self.transition_roles(from_state, to_state)
        is_allowed = self.is_transition_allowed(held, from_state, to_state)

        if is_allowed:
            reason = None
        elif not required:
            reason = f"No transition: {_state_value(from_state)} -> {_state_value(to_state)}"
        else:
            reason = f"Requires one of roles: {', '.join(sorted(required))}"

        return {
            'from_state': _state_value(from_state),
            'to_state': _state_value(to_state),
            'is_allowed': is_allowed,
            'rejection_reason': reason,
            'required_roles': sorted(required),
            'is_terminal': self.is_terminal_state(to_state),
        }

    def _translate(self, roles: FrozenSet[str]) -> FrozenSet[str]:
        return frozenset(self.role_aliases.get(role, role) for role in roles)

    def _role_set(self, roles: Iterable[Any]) -> FrozenSet[str]:
        """Normalize caller roles; Role members map to their deployment token."""
        if isinstance(roles, (str, Role)):
            roles = [roles]
        return frozenset(
            self.role_aliases.get(role.value, role.value) if isinstance(role, Role) else role
            for role in roles
        )


def _state_value(state: Any) -> str:
    return state.value if isinstance(state, WorkflowState) else state

