import numpy as np
import pytest

from prioritized_replay import PrioritizedReplay
from replay_config import ReplayConfig
from replay_persistence import ReplayArchive
from value_function import TabularValueFunction


def _engine():
    cfg = ReplayConfig(capacity=8, batch_size=4, replay_frequency=3, anneal_steps=20, seed=1)
    return PrioritizedReplay(TabularValueFunction(n_actions=4), cfg)


def _fill(engine, steps=11):
    for i in range(steps):
        engine.observe((i % 5, i % 3), i % 4, -0.1, ((i + 1) % 5, i % 3), i == steps - 1)


def test_save_and_load_round_trip(tmp_path):
    src = _engine()
    _fill(src)
    archive = ReplayArchive(str(tmp_path / "replay.db"))
    written = archive.save("run-a", src)
    assert written == 8

    dst = _engine()
    archive.load("run-a", dst)
    archive.close()

    assert dst.count == src.count
    assert dst.store.write_cursor == src.store.write_cursor
    assert dst.beta == pytest.approx(src.beta)
    assert dst.steps == src.steps
    np.testing.assert_allclose(dst.store.priorities, src.store.priorities)
    for a, b in zip(dst.store, src.store):
        assert a.state == b.state
        assert isinstance(a.state, tuple)
        assert a.next_state == b.next_state
        assert a.terminal == b.terminal
        assert a.sequence_number == b.sequence_number


def test_resave_replaces_run(tmp_path):
    engine = _engine()
    _fill(engine, steps=3)
    archive = ReplayArchive(str(tmp_path / "replay.db"))
    archive.save("run", engine)
    _fill(engine, steps=4)
    archive.save("run", engine)
    archive.save("other", engine)

    assert sorted(archive.run_ids()) == ["other", "run"]
    count = archive.conn.execute(
        "SELECT COUNT(*) FROM replay_transitions WHERE run_id = 'run'"
    ).fetchone()[0]
    assert count == 7

    archive.delete("other")
    assert archive.run_ids() == ["run"]
    archive.close()


def test_missing_run_raises(tmp_path):
    archive = ReplayArchive(str(tmp_path / "replay.db"))
    with pytest.raises(KeyError):
        archive.load("nope", _engine())
    archive.close()


def test_empty_engine_round_trip(tmp_path):
    archive = ReplayArchive(str(tmp_path / "replay.db"))
    archive.save("empty", _engine())
    dst = _engine()
    archive.load("empty", dst)
    assert dst.count == 0
    assert dst.total_priority() == 0.0
    archive.close()


def test_numpy_ids_round_trip_as_plain_values(tmp_path):
    src = _engine()
    for i in range(4):
        src.add(np.array([i, i + 1]), np.int64(i % 4), np.float32(-0.5),
                (np.int32(i + 1), i), False, td_error=np.float64(0.1 * i))
    archive = ReplayArchive(str(tmp_path / "replay.db"))
    assert archive.save("numpy-run", src) == 4

    dst = _engine()
    archive.load("numpy-run", dst)
    archive.close()

    assert [t.action for t in dst.store] == [0, 1, 2, 3]
    assert all(type(t.action) is int for t in dst.store)
    assert dst.store[1].state == (1, 2)
    assert dst.store[1].next_state == (2, 1)
    np.testing.assert_allclose(dst.store.priorities, src.store.priorities)
