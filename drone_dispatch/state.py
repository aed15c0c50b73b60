"""State machine implementation for managing validated lifecycle transitions.

Orders and vehicles both move through small finite state graphs. The
``StateMachine`` below enforces those graphs and can run an effect when a
transition happens.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Set, TypeVar

from .exceptions import IllegalTransitionError

State = TypeVar("State", bound=Enum)
"""Type variable for state enumerations that extend Enum."""

ActionFn = Callable[..., Any]
"""Type alias for action effect functions."""

StateGraph = Dict[Enum, Set["Action"]]


@dataclass(frozen=True)
class Action:
    """A transition to ``state`` with an optional side effect.

    Attributes:
        state: The target state this action transitions to.
        effect: Optional function to execute when this action is performed.
    """

    state: Enum
    effect: ActionFn | None = None

    def __call__(self, *args, **kwargs) -> Any:
        """Execute the action's effect function if it exists.

        Returns:
            The result of the effect function, or None if no effect is defined.
        """
        if self.effect:
            return self.effect(*args, **kwargs)
        return None


class StateMachine:
    """A finite state machine that validates every requested transition.

    Attributes:
        _state: The current state of the state machine.
        _allowed: Dictionary mapping states to their allowed transitions.
    """

    _allowed: StateGraph
    _state: Enum

    def __init__(self, initial_state: Enum, nodes_graph: StateGraph):
        """Initialize the state machine with an initial state and transition rules.

        Args:
            initial_state: The starting state for the state machine.
            nodes_graph: Dictionary mapping each state to its set of allowed actions.
        """
        self._state = initial_state
        self._allowed = nodes_graph

    def request_transition(self, next_state: Enum, *args, **kwargs) -> Any:
        """Move to ``next_state`` and run the matching action's effect.

        Args:
            next_state: The target state to transition to.

        Returns:
            The result of the transition action's effect function,
            or None if the action has no effect.

        Raises:
            IllegalTransitionError: If the graph has no edge from the
                current state to ``next_state``.
        """
        next_action = self._validate_transition(self._state, next_state)
        self._state = next_action.state
        return next_action(*args, **kwargs)

    def _validate_transition(self, frm: Enum, to: Enum) -> Action:
        allowed_actions: Set[Action] = self._allowed.get(frm, set())
        for action in allowed_actions:
            if action.state == to:
                return action

        msg = f"Illegal transition {frm.name} -> {to.name}"
        raise IllegalTransitionError(msg)
