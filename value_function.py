"""
The replay engine only talks to a value function through three calls:
``value(state, action)``, ``max_value(state)`` and
``update(state, action, target, effective_step)``. Anything that provides
them (dense table, dict, function approximator) can be replayed against.

``TabularValueFunction`` is a dictionary-backed Q-table for small discrete
problems such as grid worlds:

    Q(s, a) <- Q(s, a) + step * [target - Q(s, a)]
"""
from typing import Dict, Hashable, Protocol, Tuple, runtime_checkable

import numpy as np

from priority_store import Transition
from replay_errors import ConfigurationError


@runtime_checkable
class ValueFunction(Protocol):
    def value(self, state: Hashable, action: Hashable) -> float: ...

    def max_value(self, state: Hashable) -> float: ...

    def update(self, state: Hashable, action: Hashable, target: float, effective_step: float) -> None: ...


class TabularValueFunction:
    """
    Q-table keyed by (state, action). Actions are the integers
    ``0 .. n_actions - 1``; states can be any hashable value.
    """

    def __init__(self, n_actions: int = 4, initial_value: float = 0.0):
        if n_actions <= 0:
            raise ConfigurationError(f"n_actions must be positive, got {n_actions}")
        self.n_actions = n_actions
        self.initial_value = initial_value
        # unseen pairs read as initial_value without being inserted
        self.q_table: Dict[Tuple[Hashable, int], float] = {}

    def value(self, state: Hashable, action: int) -> float:
        return self.q_table.get((state, action), self.initial_value)

    def set_value(self, state: Hashable, action: int, value: float) -> None:
        self.q_table[(state, action)] = float(value)

    def values(self, state: Hashable) -> np.ndarray:
        """All action values for a state."""
        return np.array([self.value(state, a) for a in range(self.n_actions)])

    def max_value(self, state: Hashable) -> float:
        return float(self.values(state).max())

    def greedy_action(self, state: Hashable) -> int:
        return int(np.argmax(self.values(state)))

    def update(self, state: Hashable, action: int, target: float, effective_step: float) -> None:
        current = self.value(state, action)
        self.q_table[(state, action)] = current + effective_step * (target - current)

    @property
    def size(self) -> int:
        """Number of state-action pairs written so far."""
        return len(self.q_table)


def td_target(value_fn: ValueFunction, reward: float, next_state: Hashable,
              terminal: bool, discount: float) -> float:
    if terminal:
        return float(reward)
    return float(reward) + discount * value_fn.max_value(next_state)


def compute_td_error(value_fn: ValueFunction, transition: Transition, discount: float) -> float:
    """Signed TD error of a stored transition under the current values."""
    target = td_target(value_fn, transition.reward, transition.next_state,
                       transition.terminal, discount)
    return target - value_fn.value(transition.state, transition.action)
