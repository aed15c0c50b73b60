"""
Tests for the lifecycle state machine.
"""

import unittest
from enum import Enum, auto

from drone_dispatch.exceptions import IllegalTransitionError
from drone_dispatch.state import Action, StateMachine


class Light(Enum):
    RED = auto()
    GREEN = auto()
    YELLOW = auto()


class TestStateMachine(unittest.TestCase):

    def setUp(self):
        self.events = []
        self.graph = {
            Light.RED: {Action(Light.GREEN, lambda: self.events.append("go"))},
            Light.GREEN: {Action(Light.YELLOW)},
            Light.YELLOW: {Action(Light.RED, lambda reason: reason)},
        }

    def test_allowed_transition_runs_effect(self):
        machine = StateMachine(Light.RED, self.graph)
        machine.request_transition(Light.GREEN)
        self.assertEqual(self.events, ["go"])
        machine.request_transition(Light.YELLOW)

    def test_effect_receives_arguments_and_returns(self):
        machine = StateMachine(Light.YELLOW, self.graph)
        self.assertEqual(machine.request_transition(Light.RED, "timer"), "timer")

    def test_action_without_effect_returns_none(self):
        machine = StateMachine(Light.GREEN, self.graph)
        self.assertIsNone(machine.request_transition(Light.YELLOW))

    def test_illegal_transition_raises_and_keeps_state(self):
        machine = StateMachine(Light.RED, self.graph)
        with self.assertRaises(IllegalTransitionError):
            machine.request_transition(Light.YELLOW)
        machine.request_transition(Light.GREEN)
        self.assertEqual(self.events, ["go"])

    def test_state_without_edges_is_terminal(self):
        machine = StateMachine(Light.RED, {})
        with self.assertRaises(IllegalTransitionError):
            machine.request_transition(Light.GREEN)


if __name__ == '__main__':
    unittest.main()
