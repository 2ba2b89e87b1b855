# replay_config.py (recognized replay options)
import json
import logging
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional

import settings
from replay_errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReplayConfig:
    enabled: bool = settings.REPLAY_ENABLED
    capacity: int = settings.REPLAY_CAPACITY
    batch_size: int = settings.REPLAY_BATCH_SIZE
    replay_frequency: int = settings.REPLAY_FREQUENCY
    alpha: float = settings.PRIORITY_ALPHA
    beta_start: float = settings.BETA_START
    beta_end: float = settings.BETA_END
    anneal_steps: int = settings.BETA_ANNEAL_STEPS
    priority_floor: float = settings.PRIORITY_FLOOR
    discount: float = settings.DISCOUNT
    learning_rate: float = settings.LEARNING_RATE
    # replay only once this many transitions are stored; None -> batch_size
    min_replay_size: Optional[int] = None
    seed: Optional[int] = None

    def validate(self) -> "ReplayConfig":
        """
        Raise ConfigurationError on the first out-of-range option.
        Returns self so construction can be chained.
        """
        for name in ("capacity", "batch_size", "replay_frequency", "anneal_steps"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive int, got {value!r}")
        if not 0.0 <= self.alpha <= 1.0:
            raise ConfigurationError(f"alpha must be in [0, 1], got {self.alpha}")
        if self.priority_floor <= 0.0:
            raise ConfigurationError(f"priority_floor must be > 0, got {self.priority_floor}")
        if not 0.0 < self.beta_end <= 1.0:
            raise ConfigurationError(f"beta_end must be in (0, 1], got {self.beta_end}")
        if not 0.0 <= self.beta_start <= self.beta_end:
            raise ConfigurationError(
                f"beta_start must be in [0, beta_end={self.beta_end}], got {self.beta_start}"
            )
        if not 0.0 <= self.discount <= 1.0:
            raise ConfigurationError(f"discount must be in [0, 1], got {self.discount}")
        if self.learning_rate <= 0.0:
            raise ConfigurationError(f"learning_rate must be > 0, got {self.learning_rate}")
        if self.min_replay_size is not None and self.min_replay_size <= 0:
            raise ConfigurationError(
                f"min_replay_size must be positive when set, got {self.min_replay_size}"
            )
        return self

    @property
    def replay_threshold(self) -> int:
        """Number of stored transitions required before replay starts."""
        if self.min_replay_size is None:
            return self.batch_size
        return self.min_replay_size

    # ─── Serialization ──────────────────────────────────────────────────
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReplayConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown replay options: {sorted(unknown)}")
        return cls(**data).validate()

    @classmethod
    def from_json(cls, json_str: str) -> "ReplayConfig":
        return cls.from_dict(json.loads(json_str))


def create_default_replay_config() -> ReplayConfig:
    """Defaults from settings.py, already validated."""
    return ReplayConfig().validate()
