import logging
import random
import statistics
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from railgrid.core.models import EpisodeResult, Job, RewardWeights
from railgrid.core.reward import DEFAULT_SETTINGS, RewardSettings
from railgrid.core.signal import SignalTable
from railgrid.sim.simulator import run_episode

logger = logging.getLogger(__name__)

CONVERGENCE_WINDOW = 10
CONVERGENCE_VARIANCE = 100.0
CONVERGENCE_MIN_EPISODE = 20


@dataclass
class TrainingHistory:
    """Append-only episode history owned by the driver, not the simulator."""
    episodes: List[EpisodeResult] = field(default_factory=list)

    def append(self, result: EpisodeResult) -> None:
        self.episodes.append(result)

    def __len__(self) -> int:
        return len(self.episodes)

    @property
    def next_episode(self) -> int:
        return len(self.episodes)

    def total_rewards(self) -> List[float]:
        return [e.total_reward for e in self.episodes]

    def best_seen_rewards(self) -> List[float]:
        out: List[float] = []
        best = None
        for r in self.total_rewards():
            best = r if best is None else max(best, r)
            out.append(best)
        return out

    def best(self) -> Optional[EpisodeResult]:
        best: Optional[EpisodeResult] = None
        for e in self.episodes:
            if best is None or e.total_reward > best.total_reward:
                best = e
        return best

    def convergence_episode(self) -> Optional[int]:
        """First episode past the warm-up whose trailing window of totals has settled."""
        rewards = self.total_rewards()
        for ep in range(CONVERGENCE_WINDOW, len(rewards)):
            if ep <= CONVERGENCE_MIN_EPISODE:
                continue
            window = rewards[ep - CONVERGENCE_WINDOW + 1: ep + 1]
            if statistics.pvariance(window) < CONVERGENCE_VARIANCE:
                return ep
        return None


@dataclass
class TrainingOutcome:
    history: TrainingHistory
    best_result: Optional[EpisodeResult]
    convergence_episode: int


def run_training(
    jobs: Sequence[Job],
    table: SignalTable,
    weights: RewardWeights = RewardWeights(),
    episodes: int = 100,
    rng: Optional[random.Random] = None,
    settings: RewardSettings = DEFAULT_SETTINGS,
    on_episode: Optional[Callable[[EpisodeResult], None]] = None,
    history: Optional[TrainingHistory] = None,
    step_minutes: int = 30,
) -> TrainingOutcome:
    history = history if history is not None else TrainingHistory()
    start = history.next_episode
    for ep in range(start, start + episodes):
        result = run_episode(jobs, table, weights, ep, rng=rng, settings=settings, step_minutes=step_minutes)
        history.append(result)
        if on_episode is not None:
            on_episode(result)

    converged = history.convergence_episode()
    if converged is None:
        converged = start + episodes
    else:
        logger.info("Episode rewards settled at episode %d", converged)
    return TrainingOutcome(history=history, best_result=history.best(), convergence_episode=converged)
