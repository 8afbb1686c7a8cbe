import math
import random
from typing import List, Optional, Sequence

from railgrid.core.errors import safe_ratio
from railgrid.core.models import CYCLE_HOURS, Action, EpisodeResult, Job, Minutes, RewardWeights
from railgrid.core.reward import DEFAULT_SETTINGS, RewardSettings, evaluate
from railgrid.core.signal import SignalTable

# Epsilon-greedy episode simulation over the reward evaluator.
# No learned state survives between episodes; only the epsilon schedule
# depends on the episode number.

EPSILON_START = 0.3
EPSILON_FLOOR = 0.01
EPSILON_DECAY_EPISODES = 50.0
ON_TIME_MINUTES = 30


def epsilon_for_episode(episode_number: int) -> float:
    return max(EPSILON_FLOOR, EPSILON_START * math.exp(-episode_number / EPSILON_DECAY_EPISODES))


def _start_hour(job: Job, shift: Minutes) -> int:
    # unwrapped: hours outside [0, 24) mean the departure left the cycle
    return (job.start + shift) // 60


def select_action(
    job: Job,
    table: SignalTable,
    weights: RewardWeights,
    epsilon: float,
    rng: random.Random,
    settings: RewardSettings = DEFAULT_SETTINGS,
    step_minutes: Minutes = 30,
) -> Action:
    max_shift = job.max_shift(settings.half_cycle_minutes)

    if rng.random() < epsilon:
        return Action(job_id=job.id, shift=rng.randint(-max_shift, max_shift))

    best = Action(job_id=job.id, shift=0)
    best_reward = -math.inf
    for shift in range(-max_shift, max_shift + 1, step_minutes):
        if not 0 <= _start_hour(job, shift) < table.cycle_hours:
            continue
        reward = evaluate(job, shift, table, weights, settings).total
        if reward > best_reward:
            best_reward = reward
            best = Action(job_id=job.id, shift=shift)
    return best


def run_episode(
    jobs: Sequence[Job],
    table: SignalTable,
    weights: RewardWeights,
    episode_number: int,
    rng: Optional[random.Random] = None,
    settings: RewardSettings = DEFAULT_SETTINGS,
    step_minutes: Minutes = 30,
) -> EpisodeResult:
    """Run one epsilon-greedy pass over ``jobs`` in input order.

    Without an explicit ``rng`` the episode is seeded from its number, so a
    call is reproducible from its arguments alone.
    """
    rng = rng if rng is not None else random.Random(episode_number)
    epsilon = epsilon_for_episode(episode_number)

    actions: List[Action] = []
    reward_history: List[float] = []
    total_reward = 0.0
    on_time = 0
    favorable_hits = 0
    violations = 0
    original_cost = 0.0
    optimized_cost = 0.0
    carbon_reduction = 0.0

    for job in jobs:
        action = select_action(job, table, weights, epsilon, rng, settings, step_minutes)
        actions.append(action)

        new_hour = _start_hour(job, action.shift)
        if not 0 <= new_hour < table.cycle_hours:
            violations += 1
            continue

        reward = evaluate(job, action.shift, table, weights, settings)
        total_reward += reward.total
        reward_history.append(reward.total)

        if abs(action.shift) <= ON_TIME_MINUTES:
            on_time += 1
        if table[new_hour].favorable:
            favorable_hits += 1
        if reward.safety_penalty > 0:
            violations += 1

        before = table.slot_at_minute(job.start)
        after = table[new_hour]
        original_cost += job.energy * before.price
        optimized_cost += job.energy * after.price
        carbon_reduction += job.energy * (before.carbon_intensity - after.carbon_intensity) / 1000.0

    n = len(jobs)
    return EpisodeResult(
        episode_number=episode_number,
        total_reward=total_reward,
        reward_history=tuple(reward_history),
        on_time_rate=round(100 * safe_ratio(on_time, n)),
        signal_utilization=round(100 * safe_ratio(favorable_hits, n)),
        violation_count=violations,
        cost_savings=round(original_cost - optimized_cost),
        carbon_reduction=carbon_reduction,
        actions=tuple(actions),
        epsilon=epsilon,
    )


def apply_actions(jobs: Sequence[Job], episode: EpisodeResult, cycle_hours: int = CYCLE_HOURS) -> List[Job]:
    # departures that left the cycle were rejected by the episode; keep the current placement
    shifts = {a.job_id: a.shift for a in episode.actions}
    out: List[Job] = []
    for job in jobs:
        shift = shifts.get(job.id)
        if shift is None or not 0 <= _start_hour(job, shift) < cycle_hours:
            out.append(job)
        else:
            out.append(job.with_offset(shift))
    return out
