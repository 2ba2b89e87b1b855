# priority_store.py: fixed-capacity ring of prioritized transitions
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Hashable, Iterator, List, Optional

import numpy as np

from replay_errors import ConfigurationError, ContractViolation
from sum_tree import SumTree

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Transition:
    """One observed environment step plus its replay bookkeeping."""
    state: Hashable
    action: Hashable
    reward: float
    next_state: Hashable
    terminal: bool
    td_error: float
    priority: float
    sequence_number: int


class PriorityStore:
    """
    Circular buffer of transitions. Each slot carries a priority
    ``(|td_error| + priority_floor) ** alpha`` held in a SumTree, which also
    serves the running maximum and the normalizing total.
    """

    def __init__(self, capacity: int, alpha: float = 0.6, priority_floor: float = 1e-6):
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise ConfigurationError(f"capacity must be a positive int, got {capacity!r}")
        if not 0.0 <= alpha <= 1.0:
            raise ConfigurationError(f"alpha must be in [0, 1], got {alpha}")
        if priority_floor <= 0.0:
            raise ConfigurationError(f"priority_floor must be > 0, got {priority_floor}")

        self.capacity = capacity
        self.alpha = float(alpha)
        self.priority_floor = float(priority_floor)

        self._transitions: List[Optional[Transition]] = [None] * capacity
        self._tree = SumTree(capacity)
        self.write_cursor = 0
        self.count = 0
        self._next_sequence = 0

    def priority_for(self, td_error: float) -> float:
        """Priority for a TD error; NaN/inf errors and underflowed priorities are refused."""
        td_error = float(td_error)
        if not np.isfinite(td_error):
            raise ContractViolation(f"td_error must be finite, got {td_error}")
        priority = (abs(td_error) + self.priority_floor) ** self.alpha
        if not (np.isfinite(priority) and priority > 0.0):
            raise ContractViolation(
                f"priority for td_error={td_error} is {priority}; must be finite and > 0"
            )
        return priority

    # ─── Writes ─────────────────────────────────────────────────────────
    def add(
        self,
        state: Hashable,
        action: Hashable,
        reward: float,
        next_state: Hashable,
        terminal: bool,
        td_error: float,
    ) -> int:
        """
        Store a transition at the write cursor and return its slot.
        When the ring is full the oldest transition is overwritten.
        """
        slot = self.write_cursor
        priority = self.priority_for(td_error)

        if self.count == self.capacity:
            logger.debug(
                f"[PRIORITY STORE] overwriting slot {slot} "
                f"(seq {self._transitions[slot].sequence_number})"
            )

        self._transitions[slot] = Transition(
            state=state,
            action=action,
            reward=float(reward),
            next_state=next_state,
            terminal=bool(terminal),
            td_error=float(td_error),
            priority=priority,
            sequence_number=self._next_sequence,
        )
        self._tree[slot] = priority
        self._next_sequence += 1

        self.write_cursor = (self.write_cursor + 1) % self.capacity
        if self.count < self.capacity:
            self.count += 1
        return slot

    def refresh(self, slot_index: int, new_td_error: float) -> float:
        """Recompute one slot's priority from a fresh TD error; returns it."""
        self._check_slot(slot_index)
        priority = self.priority_for(new_td_error)
        transition = self._transitions[slot_index]
        transition.td_error = float(new_td_error)
        transition.priority = priority
        self._tree[slot_index] = priority
        return priority

    def clear(self) -> None:
        self._transitions = [None] * self.capacity
        self._tree.clear()
        self.write_cursor = 0
        self.count = 0
        logger.info("[PRIORITY STORE] cleared")

    # ─── Reads ──────────────────────────────────────────────────────────
    def total_priority(self) -> float:
        return self._tree.total()

    @property
    def max_priority(self) -> float:
        """Largest priority among valid slots; 0.0 while empty."""
        return self._tree.max()

    def min_priority(self) -> float:
        if self.count == 0:
            return 0.0
        return float(self._tree.leaves(self.count).min())

    @property
    def priorities(self) -> np.ndarray:
        return self._tree.leaves(self.count)

    def priority(self, slot_index: int) -> float:
        self._check_slot(slot_index)
        return self._tree[slot_index]

    def transition(self, slot_index: int) -> Transition:
        self._check_slot(slot_index)
        return self._transitions[slot_index]

    def find_prefix_slot(self, value: float) -> int:
        """Slot where the cumulative priority first reaches ``value``."""
        if self.count == 0:
            raise ContractViolation("prefix search on an empty store")
        slot = self._tree.find_prefix(value)
        # float rounding at the upper edge can only push past the last valid slot
        return min(slot, self.count - 1)

    def _check_slot(self, slot_index: int) -> None:
        if not 0 <= slot_index < self.count:
            raise ContractViolation(
                f"slot {slot_index} outside valid range [0, {self.count})"
            )

    def __len__(self) -> int:
        return self.count

    def __getitem__(self, slot_index: int) -> Transition:
        return self.transition(slot_index)

    def __iter__(self) -> Iterator[Transition]:
        for slot in range(self.count):
            yield self._transitions[slot]

    # ─── Snapshot ───────────────────────────────────────────────────────
    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity": self.capacity,
            "alpha": self.alpha,
            "priority_floor": self.priority_floor,
            "write_cursor": self.write_cursor,
            "count": self.count,
            "next_sequence": self._next_sequence,
            "max_priority": self.max_priority,
            "transitions": [asdict(t) for t in self],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriorityStore":
        store = cls(data["capacity"], data["alpha"], data["priority_floor"])
        rows = data["transitions"]
        if len(rows) != data["count"] or data["count"] > store.capacity:
            raise ContractViolation(
                f"snapshot holds {len(rows)} transitions for count={data['count']}"
            )
        for slot, row in enumerate(rows):
            # priorities are derived, never trusted from the blob
            priority = store.priority_for(row["td_error"])
            store._transitions[slot] = Transition(
                state=row["state"],
                action=row["action"],
                reward=float(row["reward"]),
                next_state=row["next_state"],
                terminal=bool(row["terminal"]),
                td_error=float(row["td_error"]),
                priority=priority,
                sequence_number=int(row["sequence_number"]),
            )
            store._tree[slot] = priority
        store.count = data["count"]
        store.write_cursor = data["write_cursor"]
        store._next_sequence = data["next_sequence"]
        return store
