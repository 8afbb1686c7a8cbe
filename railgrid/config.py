from __future__ import annotations
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

from railgrid.core.models import OptimizerConstraints, RewardWeights
from railgrid.core.reward import RewardSettings

# Load .env early (no error if missing)
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else None


@dataclass(frozen=True)
class RailGridConfig:
    # Reward weights: on-time, economic, signal alignment, safety
    w1: float = field(default_factory=lambda: _env_float("RAILGRID_W1", 0.3))
    w2: float = field(default_factory=lambda: _env_float("RAILGRID_W2", 0.4))
    w3: float = field(default_factory=lambda: _env_float("RAILGRID_W3", 0.25))
    w4: float = field(default_factory=lambda: _env_float("RAILGRID_W4", 0.05))
    baseline_price: float = field(default_factory=lambda: _env_float("RAILGRID_BASELINE_PRICE", 100.0))
    step_minutes: int = field(default_factory=lambda: _env_int("RAILGRID_STEP_MINUTES", 30))
    half_cycle_minutes: int = field(default_factory=lambda: _env_int("RAILGRID_HALF_CYCLE_MINUTES", 720))
    fixed_flexibility_threshold: float = field(default_factory=lambda: _env_float("RAILGRID_FIXED_FLEX_THRESHOLD", 0.3))
    # 'greedy' | 'milp'
    solver: str = field(default_factory=lambda: os.getenv("RAILGRID_SOLVER", "greedy").lower())
    episodes: int = field(default_factory=lambda: _env_int("RAILGRID_EPISODES", 100))
    seed: int | None = field(default_factory=lambda: _env_optional_int("RAILGRID_SEED"))
    log_level: str = field(default_factory=lambda: os.getenv("RAILGRID_LOG_LEVEL", "INFO").upper())

    def __post_init__(self) -> None:
        if self.step_minutes <= 0:
            raise ValueError(f"RAILGRID_STEP_MINUTES must be positive, got {self.step_minutes}")

    def weights(self) -> RewardWeights:
        return RewardWeights(w1=self.w1, w2=self.w2, w3=self.w3, w4=self.w4)

    def reward_settings(self) -> RewardSettings:
        return RewardSettings(baseline_price=self.baseline_price, half_cycle_minutes=self.half_cycle_minutes)

    def constraints(self) -> OptimizerConstraints:
        return OptimizerConstraints(
            step_minutes=self.step_minutes,
            half_cycle_minutes=self.half_cycle_minutes,
            fixed_flexibility_threshold=self.fixed_flexibility_threshold,
        )
