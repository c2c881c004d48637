from __future__ import annotations
"""Finite state machine helper for status workflows (permit requests).

Usage:
    from sigpe.utils.fsm import TransitionValidator
    REQUEST_FSM = TransitionValidator({
        'NOUVELLE': {'AFFECTEE', 'REJETEE'},
        'AFFECTEE': {'RDV_PLANIFIE', 'REJETEE'},
        'VALIDEE': set(),
    }, field_name='statut')
    REQUEST_FSM.assert_can_transition(current, target)

Raises 400 abort if invalid.
"""
from typing import Dict, Iterable, List, Set
from flask import abort


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def allowed_from(self, current: str) -> List[str]:
        return sorted(self.graph.get(current, set()))

    def terminal_states(self) -> List[str]:
        return sorted(s for s, targets in self.graph.items() if not targets)

    @classmethod
    def linear(cls, steps: Iterable[str], escape: str, field_name: str = 'status') -> 'TransitionValidator':
        """Ordered progression where `escape` is reachable from every non-terminal step."""
        steps = list(steps)
        graph: Dict[str, Set[str]] = {}
        for current, nxt in zip(steps, steps[1:]):
            graph[current] = {nxt, escape}
        graph[steps[-1]] = set()
        graph[escape] = set()
        return cls(graph, field_name=field_name)


__all__ = ['TransitionValidator']
