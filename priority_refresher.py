# priority_refresher.py
import logging
from typing import Sequence

import numpy as np

from priority_store import PriorityStore
from replay_errors import ContractViolation

logger = logging.getLogger(__name__)


class PriorityRefresher:
    def __init__(self, store: PriorityStore):
        self.store = store

    def refresh_batch(self, indices: Sequence[int], new_td_errors: Sequence[float]) -> None:
        if len(indices) != len(new_td_errors):
            raise ContractViolation(
                f"refresh_batch got {len(indices)} indices for {len(new_td_errors)} TD errors"
            )
        errors = np.asarray(new_td_errors, dtype=np.float64)
        if not np.isfinite(errors).all():
            raise ContractViolation(f"refresh_batch got non-finite TD errors: {errors.tolist()}")
        for slot, td_error in zip(indices, errors):
            self.store.refresh(int(slot), float(td_error))
        logger.debug(
            f"[REFRESH] {len(indices)} slots updated, "
            f"max_priority={self.store.max_priority:.6f}"
        )
