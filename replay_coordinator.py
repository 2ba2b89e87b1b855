# replay_coordinator.py
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from beta_scheduler import BetaScheduler
from priority_refresher import PriorityRefresher
from priority_store import Transition
from proportional_sampler import ProportionalSampler
from replay_errors import ConfigurationError, EmptyStoreError
from value_function import ValueFunction, compute_td_error, td_target

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReplayReport:
    batch_size: int
    unique_slots: int
    beta: float
    mean_weight: float
    mean_abs_td_before: float
    mean_abs_td_after: float


class BatchReplayCoordinator:
    """
    sample -> TD errors -> weighted updates -> priority refresh -> beta step.

    The store must not be written to while ``replay`` runs; sampled slots are
    refreshed by index after the updates.
    """

    def __init__(
        self,
        sampler: ProportionalSampler,
        refresher: PriorityRefresher,
        scheduler: BetaScheduler,
        value_fn: ValueFunction,
        discount: float = 0.99,
        learning_rate: float = 0.1,
    ):
        self.sampler = sampler
        self.refresher = refresher
        self.scheduler = scheduler
        self.value_fn = value_fn
        self.discount = discount
        self.learning_rate = learning_rate

    def td_error(self, transition: Transition) -> float:
        return compute_td_error(self.value_fn, transition, self.discount)

    def replay(self, batch_size: int) -> Optional[ReplayReport]:
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        beta = self.scheduler.beta
        try:
            draws = self.sampler.sample(batch_size, beta)
        except EmptyStoreError:
            logger.debug("[REPLAY] store empty; cycle skipped")
            return None

        td_before = []
        for draw in draws:
            t = draw.transition
            target = td_target(self.value_fn, t.reward, t.next_state, t.terminal, self.discount)
            td_before.append(target - self.value_fn.value(t.state, t.action))
            self.value_fn.update(t.state, t.action, target,
                                 self.learning_rate * draw.importance_weight)

        # errors are measured again after the whole batch has been applied
        td_after = [self.td_error(draw.transition) for draw in draws]
        self.refresher.refresh_batch([d.slot_index for d in draws], td_after)
        self.scheduler.advance()

        report = ReplayReport(
            batch_size=len(draws),
            unique_slots=len({d.slot_index for d in draws}),
            beta=beta,
            mean_weight=float(np.mean([d.importance_weight for d in draws])),
            mean_abs_td_before=float(np.mean(np.abs(td_before))),
            mean_abs_td_after=float(np.mean(np.abs(td_after))),
        )
        logger.debug(
            f"[REPLAY] batch={report.batch_size} unique={report.unique_slots} beta={beta:.4f} "
            f"|td| {report.mean_abs_td_before:.5f} -> {report.mean_abs_td_after:.5f}"
        )
        return report
