import pytest

from replay_config import ReplayConfig, create_default_replay_config
from replay_errors import ConfigurationError


def test_defaults_are_valid():
    cfg = create_default_replay_config()
    assert cfg.enabled
    assert cfg.beta_start == pytest.approx(0.4)
    assert cfg.beta_end == pytest.approx(1.0)
    assert cfg.priority_floor > 0.0
    assert cfg.replay_threshold == cfg.batch_size


@pytest.mark.parametrize("overrides", [
    {"capacity": 0},
    {"batch_size": -1},
    {"anneal_steps": 0},
    {"replay_frequency": 0},
    {"capacity": 2.5},
    {"priority_floor": 0.0},
    {"alpha": -0.5},
    {"alpha": 1.5},
    {"alpha": 60.0},
    {"beta_start": 0.9, "beta_end": 0.8},
    {"beta_end": 1.1},
    {"discount": 1.5},
    {"learning_rate": 0.0},
    {"min_replay_size": 0},
])
def test_out_of_range_options_rejected(overrides):
    with pytest.raises(ConfigurationError):
        ReplayConfig(**overrides).validate()


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        ReplayConfig(capacity=-1).validate()


def test_json_round_trip():
    cfg = ReplayConfig(capacity=123, alpha=0.7, min_replay_size=50, seed=9)
    restored = ReplayConfig.from_json(cfg.to_json())
    assert restored == cfg
    assert restored.replay_threshold == 50


def test_unknown_option_rejected():
    with pytest.raises(ConfigurationError):
        ReplayConfig.from_dict({"capacity": 10, "gamma": 0.9})
