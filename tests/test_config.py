import pytest

from railgrid.config import RailGridConfig


def test_defaults(monkeypatch):
    for name in ("RAILGRID_W1", "RAILGRID_SOLVER", "RAILGRID_SEED", "RAILGRID_HALF_CYCLE_MINUTES"):
        monkeypatch.delenv(name, raising=False)
    cfg = RailGridConfig()
    assert cfg.solver == "greedy"
    assert cfg.seed is None
    assert cfg.weights().is_normalized()
    assert cfg.constraints().half_cycle_minutes == 720


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RAILGRID_W1", "0.5")
    monkeypatch.setenv("RAILGRID_SOLVER", "MILP")
    monkeypatch.setenv("RAILGRID_SEED", "42")
    monkeypatch.setenv("RAILGRID_STEP_MINUTES", "15")
    monkeypatch.setenv("RAILGRID_HALF_CYCLE_MINUTES", "180")
    cfg = RailGridConfig()
    assert cfg.weights().w1 == 0.5
    assert cfg.solver == "milp"
    assert cfg.seed == 42
    assert cfg.constraints().step_minutes == 15
    assert cfg.reward_settings().half_cycle_minutes == 180


def test_blank_values_fall_back(monkeypatch):
    monkeypatch.setenv("RAILGRID_EPISODES", "")
    assert RailGridConfig().episodes == 100


def test_non_positive_step_rejected(monkeypatch):
    monkeypatch.setenv("RAILGRID_STEP_MINUTES", "0")
    with pytest.raises(ValueError):
        RailGridConfig()
