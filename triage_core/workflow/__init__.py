"""
Document workflow layer.

Provides the role-guarded workflow state machine for advisory documents.
"""
from .state_machine import (
    ROLES,
    WORKFLOW_STATES,
    WORKFLOW_TRANSITIONS,
    Role,
    WorkflowState,
    WorkflowStateMachine,
    WorkflowStateTransition,
)


__all__ = [
    'ROLES',
    'WORKFLOW_STATES',
    'WORKFLOW_TRANSITIONS',
    'Role',
    'WorkflowState',
    'WorkflowStateMachine',
    'WorkflowStateTransition',
]
