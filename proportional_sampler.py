import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np

from priority_store import PriorityStore, Transition
from replay_errors import ConfigurationError, EmptyStoreError

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    def uniform(self, low: float, high: float) -> float: ...


def make_random_source(seed: Optional[int] = None) -> np.random.Generator:
    """Seeded numpy generator; exposes ``uniform(low, high)`` over [low, high)."""
    return np.random.default_rng(seed)


@dataclass(slots=True)
class Draw:
    slot_index: int
    transition: Transition
    importance_weight: float


class ProportionalSampler:
    def __init__(self, store: PriorityStore, random_source: Optional[RandomSource] = None):
        self.store = store
        self.random_source = random_source if random_source is not None else make_random_source()

    def importance_weight(self, slot_index: int, beta: float) -> float:
        """
        Un-normalized weight ``(count * P(i)) ** -beta`` for one slot.
        Lower-priority slots get larger weights for any beta > 0.
        """
        if self.store.count == 0:
            raise EmptyStoreError("no transitions stored")
        probability = self.store.priority(slot_index) / self.store.total_priority()
        return float((self.store.count * probability) ** (-beta))

    def sample(self, batch_size: int, beta: float) -> List[Draw]:
        """
        Draw ``batch_size`` slots with replacement, each with probability
        proportional to its priority. Weights are divided by the batch
        maximum so none exceeds 1.0.
        """
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        store = self.store
        count = store.count
        if count == 0:
            raise EmptyStoreError("cannot sample from an empty store")

        total = store.total_priority()
        slots = []
        for _ in range(batch_size):
            u = float(self.random_source.uniform(0.0, total))
            if u >= total:
                # random.Random.uniform may return the upper bound
                u = np.nextafter(total, 0.0)
            slots.append(store.find_prefix_slot(u))

        priorities = np.array([store.priority(s) for s in slots], dtype=np.float64)
        probabilities = priorities / total
        weights = (count * probabilities) ** (-beta)
        weights /= weights.max()

        logger.debug(
            f"[SAMPLER] drew {batch_size} slots (unique={len(set(slots))}) "
            f"beta={beta:.4f} total={total:.6f}"
        )
        return [
            Draw(slot, store.transition(slot), float(w))
            for slot, w in zip(slots, weights)
        ]
