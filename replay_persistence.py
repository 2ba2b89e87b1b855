# replay_persistence.py: snapshots of replay state in DuckDB
import json
import logging
from typing import Any, List

import duckdb
import numpy as np

from prioritized_replay import PrioritizedReplay

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    """numpy scalars and arrays from training loops serialize as plain JSON."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _hashable(value: Any) -> Any:
    """JSON turns tuples into lists; turn them back so ids stay hashable."""
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    return value


class ReplayArchive:
    """
    Stores ``PrioritizedReplay.snapshot()`` blobs keyed by run id.
    One row per run in ``replay_meta``, one row per valid slot in
    ``replay_transitions``. Saving a run id again replaces it.
    """

    TABLE_SCHEMAS = {
        "replay_meta": (
            "run_id VARCHAR, ts TIMESTAMP, "
            "config JSON, scheduler JSON, "
            "capacity INTEGER, alpha DOUBLE, priority_floor DOUBLE, "
            "write_cursor INTEGER, slot_count INTEGER, next_sequence BIGINT, "
            "max_priority DOUBLE, steps BIGINT, replays BIGINT"
        ),
        "replay_transitions": (
            "run_id VARCHAR, slot INTEGER, "
            "state VARCHAR, action VARCHAR, reward DOUBLE, next_state VARCHAR, "
            "terminal BOOLEAN, td_error DOUBLE, priority DOUBLE, sequence_number BIGINT"
        ),
    }

    def __init__(self, path: str = "replay_archive.db") -> None:
        self.path = path
        self.conn = duckdb.connect(path)
        for table, schema in self.TABLE_SCHEMAS.items():
            self.conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({schema})")

    def save(self, run_id: str, engine: PrioritizedReplay) -> int:
        """Persist the engine under ``run_id``; returns transitions written."""
        blob = engine.snapshot()
        store = blob["store"]
        rows = [
            (
                run_id, slot,
                _dumps(t["state"]), _dumps(t["action"]), t["reward"],
                _dumps(t["next_state"]), t["terminal"],
                t["td_error"], t["priority"], t["sequence_number"],
            )
            for slot, t in enumerate(store["transitions"])
        ]
        self.conn.begin()
        try:
            self._delete(run_id)
            self.conn.execute(
                "INSERT INTO replay_meta VALUES (?, now(), ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    run_id, _dumps(blob["config"]), _dumps(blob["scheduler"]),
                    store["capacity"], store["alpha"], store["priority_floor"],
                    store["write_cursor"], store["count"], store["next_sequence"],
                    store["max_priority"], blob["steps"], blob["replays"],
                ],
            )
            if rows:
                self.conn.executemany(
                    "INSERT INTO replay_transitions VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
            self.conn.commit()
        except duckdb.Error as e:
            self.conn.rollback()
            logger.error(f"[ARCHIVE] save of run '{run_id}' failed: {e}")
            raise
        logger.info(f"[ARCHIVE] saved run '{run_id}' ({len(rows)} transitions) to {self.path}")
        return len(rows)

    def load(self, run_id: str, engine: PrioritizedReplay) -> None:
        """Restore ``engine`` from the snapshot stored under ``run_id``."""
        meta = self.conn.execute(
            "SELECT config, scheduler, capacity, alpha, priority_floor, write_cursor, "
            "slot_count, next_sequence, max_priority, steps, replays "
            "FROM replay_meta WHERE run_id = ?",
            [run_id],
        ).fetchone()
        if meta is None:
            raise KeyError(f"no replay snapshot for run '{run_id}'")
        (config, scheduler, capacity, alpha, floor, cursor,
         count, next_seq, max_priority, steps, replays) = meta

        rows = self.conn.execute(
            "SELECT state, action, reward, next_state, terminal, td_error, priority, "
            "sequence_number FROM replay_transitions WHERE run_id = ? ORDER BY slot",
            [run_id],
        ).fetchall()
        transitions = [
            {
                "state": _hashable(json.loads(state)),
                "action": _hashable(json.loads(action)),
                "reward": reward,
                "next_state": _hashable(json.loads(next_state)),
                "terminal": terminal,
                "td_error": td_error,
                "priority": priority,
                "sequence_number": seq,
            }
            for state, action, reward, next_state, terminal, td_error, priority, seq in rows
        ]
        engine.restore({
            "config": json.loads(config),
            "scheduler": json.loads(scheduler),
            "store": {
                "capacity": capacity,
                "alpha": alpha,
                "priority_floor": floor,
                "write_cursor": cursor,
                "count": count,
                "next_sequence": next_seq,
                "max_priority": max_priority,
                "transitions": transitions,
            },
            "steps": steps,
            "replays": replays,
        })
        logger.info(f"[ARCHIVE] loaded run '{run_id}' ({len(transitions)} transitions)")

    def run_ids(self) -> List[str]:
        return [r[0] for r in self.conn.execute(
            "SELECT run_id FROM replay_meta ORDER BY ts, run_id"
        ).fetchall()]

    def delete(self, run_id: str) -> None:
        self._delete(run_id)
        logger.info(f"[ARCHIVE] deleted run '{run_id}'")

    def _delete(self, run_id: str) -> None:
        self.conn.execute("DELETE FROM replay_transitions WHERE run_id = ?", [run_id])
        self.conn.execute("DELETE FROM replay_meta WHERE run_id = ?", [run_id])

    def close(self) -> None:
        self.conn.close()
