from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet, Tuple

from .models import (
    HALF_CYCLE_MINUTES,
    RESTRICTED_CLASSES,
    Job,
    JobClass,
    Minutes,
    RewardBreakdown,
    RewardWeights,
)
from .signal import FAVORABLE_SURPLUS, SignalTable


@dataclass(frozen=True)
class RewardSettings:
    baseline_price: float = 100.0
    half_cycle_minutes: Minutes = HALF_CYCLE_MINUTES
    favorable_bonus: float = 50.0
    incentive_bonus: float = 30.0
    surplus_factor: float = 0.5
    favorable_threshold: float = FAVORABLE_SURPLUS
    # The surplus term fires on the same condition as the favorable bonus
    double_count_surplus: bool = True
    priority_tier: int = 4
    grace_minutes: Minutes = 30
    restricted_classes: FrozenSet[JobClass] = RESTRICTED_CLASSES
    operating_band: Tuple[int, int] = (5, 23)  # inclusive departure hours
    band_penalty: float = 500.0


DEFAULT_SETTINGS = RewardSettings()


def departure_hour(job: Job, offset: Minutes, cycle_hours: int = 24) -> int:
    return ((job.start + offset) // 60) % cycle_hours


def on_time_reward(shift: Minutes, allowed: Minutes) -> float:
    # linear decay from 100 inside the allowance, -50 per hour beyond it
    if allowed > 0 and shift <= allowed:
        return 100.0 * (1.0 - shift / allowed)
    if allowed == 0 and shift == 0:
        return 100.0
    return -50.0 * (shift - allowed) / 60.0


def evaluate(
    job: Job,
    offset: Minutes,
    table: SignalTable,
    weights: RewardWeights = RewardWeights(),
    settings: RewardSettings = DEFAULT_SETTINGS,
) -> RewardBreakdown:
    """Score departing ``job`` at ``offset`` minutes from its scheduled start.

    Pure: the hour wraps around the cycle and no input is rejected.
    """
    shift = abs(int(offset))
    allowed = job.max_shift(settings.half_cycle_minutes)
    hour = departure_hour(job, offset, table.cycle_hours)
    slot = table[hour]

    on_time = on_time_reward(shift, allowed)

    economic = (settings.baseline_price - slot.price) * job.energy / 10000.0

    signal_alignment = 0.0
    if slot.favorable:
        signal_alignment += settings.favorable_bonus
    if slot.incentive:
        signal_alignment += settings.incentive_bonus
    if settings.double_count_surplus and slot.surplus > settings.favorable_threshold:
        signal_alignment += slot.surplus * settings.surplus_factor

    safety_penalty = 0.0
    if job.priority >= settings.priority_tier and shift > settings.grace_minutes:
        safety_penalty += 100.0 * (shift - settings.grace_minutes) / 60.0
    lo, hi = settings.operating_band
    if job.job_class in settings.restricted_classes and not (lo <= hour <= hi):
        safety_penalty += settings.band_penalty

    total = (
        weights.w1 * on_time
        + weights.w2 * economic
        + weights.w3 * signal_alignment
        - weights.w4 * safety_penalty
    )
    return RewardBreakdown(
        on_time=on_time,
        economic=economic,
        signal_alignment=signal_alignment,
        safety_penalty=safety_penalty,
        total=total,
    )
