# replay_diagnostics.py
import logging
from typing import Any, Dict, Optional

import numpy as np
import psutil
from colorama import Fore, Style

from prioritized_replay import PrioritizedReplay

logger = logging.getLogger(__name__)


def collect(engine: PrioritizedReplay) -> Dict[str, Any]:
    """
    Snapshot of buffer fill, priority spread and annealing progress.
    Never mutates the engine.
    """
    store = engine.store
    priorities = store.priorities
    if priorities.size:
        mean_p = float(priorities.mean())
        min_p = float(priorities.min())
    else:
        mean_p = min_p = 0.0
    rss = psutil.Process().memory_info().rss
    return {
        "count": store.count,
        "capacity": store.capacity,
        "fill_ratio": store.count / store.capacity,
        "total_priority": store.total_priority(),
        "max_priority": store.max_priority,
        "min_priority": min_p,
        "mean_priority": mean_p,
        # effective sample size of the sampling distribution
        "effective_size": _effective_size(priorities),
        "beta": engine.beta,
        "steps": engine.steps,
        "replays": engine.replays,
        "rss_mb": rss / (1024 * 1024),
    }


def _effective_size(priorities: np.ndarray) -> float:
    total = priorities.sum()
    if total <= 0.0:
        return 0.0
    probs = priorities / total
    return float(1.0 / np.sum(probs ** 2))


def log_summary(engine: PrioritizedReplay, log: Optional[logging.Logger] = None) -> Dict[str, Any]:
    stats = collect(engine)
    (log or logger).info(
        f"{Fore.CYAN}[REPLAY STATS]{Style.RESET_ALL} "
        f"{stats['count']}/{stats['capacity']} stored, "
        f"total_p={stats['total_priority']:.4f} max_p={stats['max_priority']:.4f} "
        f"ess={stats['effective_size']:.1f} beta={stats['beta']:.3f} "
        f"replays={stats['replays']} rss={stats['rss_mb']:.1f}MB"
    )
    return stats
