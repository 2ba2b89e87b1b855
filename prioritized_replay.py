# =============================================================================
# prioritized_replay.py
# =============================================================================
import logging
from typing import Any, Dict, Hashable, Optional

from beta_scheduler import BetaScheduler
from priority_refresher import PriorityRefresher
from priority_store import PriorityStore, Transition
from proportional_sampler import ProportionalSampler, RandomSource, make_random_source
from replay_config import ReplayConfig
from replay_coordinator import BatchReplayCoordinator, ReplayReport
from value_function import ValueFunction, compute_td_error

logger = logging.getLogger(__name__)


class PrioritizedReplay:
    """
    Owns one PriorityStore and the collaborators that read it. The training
    loop calls ``observe`` after every environment step; replay cycles fire
    every ``replay_frequency`` steps once enough transitions are stored.
    """

    def __init__(
        self,
        value_fn: ValueFunction,
        config: Optional[ReplayConfig] = None,
        random_source: Optional[RandomSource] = None,
    ):
        self.config = (config or ReplayConfig()).validate()
        cfg = self.config
        self.value_fn = value_fn

        self.store = PriorityStore(cfg.capacity, cfg.alpha, cfg.priority_floor)
        if random_source is None:
            random_source = make_random_source(cfg.seed)
        self.sampler = ProportionalSampler(self.store, random_source)
        self.refresher = PriorityRefresher(self.store)
        self.scheduler = BetaScheduler(cfg.beta_start, cfg.anneal_steps, cfg.beta_end)
        self.coordinator = BatchReplayCoordinator(
            self.sampler, self.refresher, self.scheduler, value_fn,
            discount=cfg.discount, learning_rate=cfg.learning_rate,
        )
        self.steps = 0
        self.replays = 0
        logger.info(
            f"[REPLAY] engine ready capacity={cfg.capacity} batch={cfg.batch_size} "
            f"alpha={cfg.alpha} beta={cfg.beta_start}->{cfg.beta_end}"
        )

    # ─── Training-loop surface ──────────────────────────────────────────
    def add(
        self,
        state: Hashable,
        action: Hashable,
        reward: float,
        next_state: Hashable,
        terminal: bool,
        td_error: Optional[float] = None,
    ) -> int:
        """
        Store a transition. Without an explicit ``td_error`` the error is
        measured against the current value function.
        """
        if td_error is None:
            probe = Transition(state, action, float(reward), next_state, bool(terminal),
                               0.0, 0.0, -1)
            td_error = compute_td_error(self.value_fn, probe, self.config.discount)
        return self.store.add(state, action, reward, next_state, terminal, td_error)

    def observe(
        self,
        state: Hashable,
        action: Hashable,
        reward: float,
        next_state: Hashable,
        terminal: bool,
        td_error: Optional[float] = None,
    ) -> Optional[ReplayReport]:
        """
        ``add`` plus replay scheduling. Returns the report of the replay
        cycle this step triggered, if any.
        """
        if not self.config.enabled:
            return None
        self.add(state, action, reward, next_state, terminal, td_error)
        self.steps += 1
        if self.steps % self.config.replay_frequency != 0:
            return None
        if self.store.count < self.config.replay_threshold:
            return None
        return self.replay()

    def replay(self, batch_size: Optional[int] = None) -> Optional[ReplayReport]:
        if batch_size is None:
            batch_size = self.config.batch_size
        report = self.coordinator.replay(batch_size)
        if report is not None:
            self.replays += 1
        return report

    # ─── Introspection ──────────────────────────────────────────────────
    @property
    def count(self) -> int:
        return self.store.count

    def total_priority(self) -> float:
        return self.store.total_priority()

    @property
    def max_priority(self) -> float:
        return self.store.max_priority

    @property
    def beta(self) -> float:
        return self.scheduler.beta

    def __len__(self) -> int:
        return self.store.count

    # ─── Snapshot ───────────────────────────────────────────────────────
    def snapshot(self) -> Dict[str, Any]:
        """Opaque blob with everything needed to resume replay."""
        return {
            "config": self.config.to_dict(),
            "store": self.store.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "steps": self.steps,
            "replays": self.replays,
        }

    def restore(self, blob: Dict[str, Any]) -> None:
        """
        Replace store, scheduler and counters with a snapshot's. The
        collaborators are rebuilt around the restored store so they keep
        sharing it.
        """
        self.config = ReplayConfig.from_dict(blob["config"])
        self.store = PriorityStore.from_dict(blob["store"])
        self.scheduler = BetaScheduler.from_dict(blob["scheduler"])
        self.sampler = ProportionalSampler(self.store, self.sampler.random_source)
        self.refresher = PriorityRefresher(self.store)
        self.coordinator = BatchReplayCoordinator(
            self.sampler, self.refresher, self.scheduler, self.value_fn,
            discount=self.config.discount, learning_rate=self.config.learning_rate,
        )
        self.steps = int(blob["steps"])
        self.replays = int(blob["replays"])
        logger.info(f"[REPLAY] restored {self.store.count} transitions, beta={self.beta:.4f}")
