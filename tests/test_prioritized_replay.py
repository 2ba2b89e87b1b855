from collections import Counter

import numpy as np
import pytest

from prioritized_replay import PrioritizedReplay
from proportional_sampler import make_random_source
from replay_config import ReplayConfig
from replay_errors import ConfigurationError
from value_function import TabularValueFunction


def _engine(**overrides):
    cfg = ReplayConfig(capacity=10, batch_size=4, replay_frequency=2,
                       anneal_steps=10, seed=42, **overrides)
    return PrioritizedReplay(TabularValueFunction(n_actions=4), cfg)


def test_prioritized_sampling_and_length():
    replay = _engine(alpha=1.0)
    items = ['low', 'medium', 'high']
    errors = [1.0, 2.0, 5.0]
    for item, td in zip(items, errors):
        replay.add(item, 0, 0.0, item, True, td_error=td)

    assert len(replay) == len(items)

    draws = replay.sampler.sample(1000, replay.beta)
    counts = Counter(d.transition.state for d in draws)
    assert counts['high'] > counts['medium'] > counts['low']


def test_add_without_td_error_measures_against_values():
    q = TabularValueFunction(n_actions=2)
    q.set_value("a", 0, 1.0)
    q.set_value("b", 1, 3.0)
    replay = PrioritizedReplay(q, ReplayConfig(capacity=4, discount=0.5, alpha=1.0))

    slot = replay.add("a", 0, 2.0, "b", False)
    # 2.0 + 0.5 * 3.0 - 1.0
    assert replay.store.transition(slot).td_error == pytest.approx(2.5)


def test_observe_replays_on_frequency_once_filled():
    replay = _engine()
    reports = [replay.observe(i, i % 4, 1.0, i + 1, False) for i in range(8)]

    # steps 2 and 4 hit the frequency, but only step 4 has batch_size entries
    assert reports[1] is None
    assert reports[3] is not None
    assert reports[5] is not None and reports[7] is not None
    assert [r is None for r in reports[::2]] == [True] * 4
    assert replay.replays == 3
    assert replay.beta > 0.4


def test_disabled_engine_ignores_observations():
    replay = _engine(enabled=False)
    assert replay.observe(0, 0, 1.0, 1, False) is None
    assert replay.count == 0
    assert replay.steps == 0


def test_replay_on_empty_engine_returns_none():
    replay = _engine()
    assert replay.replay() is None
    assert replay.replays == 0
    assert replay.beta == pytest.approx(0.4)


def test_snapshot_restore_resumes_state():
    replay = _engine()
    for i in range(14):
        replay.observe((i, 0), i % 4, float(i), (i + 1, 0), i % 5 == 0)
    blob = replay.snapshot()

    fresh = _engine()
    fresh.restore(blob)
    assert fresh.count == replay.count == 10
    assert fresh.steps == 14
    assert fresh.replays == replay.replays
    assert fresh.beta == pytest.approx(replay.beta)
    assert fresh.total_priority() == pytest.approx(replay.total_priority())
    np.testing.assert_allclose(fresh.store.priorities, replay.store.priorities)
    # collaborators share the restored store
    assert fresh.sampler.store is fresh.store
    assert fresh.refresher.store is fresh.store
    assert fresh.coordinator.scheduler is fresh.scheduler


def test_explicit_random_source_is_used():
    a = PrioritizedReplay(TabularValueFunction(), ReplayConfig(capacity=50),
                          random_source=make_random_source(3))
    b = PrioritizedReplay(TabularValueFunction(), ReplayConfig(capacity=50),
                          random_source=make_random_source(3))
    for engine in (a, b):
        for i in range(50):
            engine.add(i, 0, 0.0, i, True, td_error=i / 50)
    slots_a = [d.slot_index for d in a.sampler.sample(16, a.beta)]
    slots_b = [d.slot_index for d in b.sampler.sample(16, b.beta)]
    assert slots_a == slots_b


def test_alpha_above_one_rejected_at_construction():
    with pytest.raises(ConfigurationError):
        PrioritizedReplay(TabularValueFunction(n_actions=2),
                          ReplayConfig(capacity=4, batch_size=2, alpha=60.0))


def test_zero_error_transitions_replay_with_finite_weights():
    q = TabularValueFunction(n_actions=2)
    replay = PrioritizedReplay(q, ReplayConfig(capacity=4, batch_size=2, alpha=1.0, seed=3))
    replay.add("s", 0, 1.0, "s", True, td_error=0.0)
    replay.add("t", 1, 1.0, "t", True, td_error=0.0)
    assert replay.total_priority() > 0.0

    report = replay.replay()
    assert report is not None
    assert np.isfinite(report.mean_weight)
    assert all(np.isfinite(v) for v in q.q_table.values())
    assert max(q.q_table.values()) > 0.0
