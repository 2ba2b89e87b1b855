# beta_scheduler.py
import logging
from typing import Any, Dict

from replay_errors import ConfigurationError

logger = logging.getLogger(__name__)


class BetaScheduler:
    """
    beta moves from ``beta_start`` to ``beta_end`` in ``anneal_steps`` equal
    increments, one per ``advance()``, then stays clamped at ``beta_end``.
    """

    def __init__(self, beta_start: float = 0.4, anneal_steps: int = 100000, beta_end: float = 1.0):
        if not isinstance(anneal_steps, int) or isinstance(anneal_steps, bool) or anneal_steps <= 0:
            raise ConfigurationError(f"anneal_steps must be a positive int, got {anneal_steps!r}")
        if not 0.0 < beta_end <= 1.0:
            raise ConfigurationError(f"beta_end must be in (0, 1], got {beta_end}")
        if not 0.0 <= beta_start <= beta_end:
            raise ConfigurationError(f"beta_start must be in [0, {beta_end}], got {beta_start}")

        self.beta_start = float(beta_start)
        self.beta_end = float(beta_end)
        self.anneal_steps = anneal_steps
        self.increment = (self.beta_end - self.beta_start) / anneal_steps
        self.beta = self.beta_start
        self.steps = 0

    @property
    def finished(self) -> bool:
        return self.beta >= self.beta_end

    def advance(self) -> float:
        self.steps += 1
        if self.finished:
            return self.beta
        self.beta = min(self.beta + self.increment, self.beta_end)
        if self.finished:
            logger.info(f"[BETA] reached {self.beta_end} after {self.steps} replay cycles")
        return self.beta

    def to_dict(self) -> Dict[str, Any]:
        return {
            "beta_start": self.beta_start,
            "beta_end": self.beta_end,
            "anneal_steps": self.anneal_steps,
            "beta": self.beta,
            "steps": self.steps,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BetaScheduler":
        sched = cls(data["beta_start"], data["anneal_steps"], data["beta_end"])
        sched.beta = min(float(data["beta"]), sched.beta_end)
        sched.steps = int(data["steps"])
        return sched
