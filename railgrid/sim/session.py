import random
from dataclasses import replace
from typing import List, Optional, Sequence

from railgrid.core.models import EpisodeResult, Job, Minutes, OptimizationResult, OptimizerConstraints, RewardWeights
from railgrid.core.greedy_scheduler import apply_results
from railgrid.core.reward import DEFAULT_SETTINGS, RewardSettings
from railgrid.core.signal import SignalTable
from railgrid.core.solver import schedule_jobs
from railgrid.sim.reporting import PerformanceMetrics, performance_metrics
from railgrid.sim.simulator import apply_actions, run_episode
from railgrid.sim.training import TrainingHistory


class SimulationSession:
    """Caller-side shell that owns the job list and the episode history.

    The optimizer and simulator stay pure; this object only threads their
    outputs back into its own state.
    """

    def __init__(
        self,
        jobs: Sequence[Job],
        table: SignalTable,
        weights: RewardWeights = RewardWeights(),
        constraints: Optional[OptimizerConstraints] = None,
        settings: RewardSettings = DEFAULT_SETTINGS,
        solver: str = "greedy",
        seed: Optional[int] = None,
    ) -> None:
        self._initial_jobs: List[Job] = list(jobs)
        self.jobs: List[Job] = list(jobs)
        self.table = table
        self.weights = weights
        self.constraints = constraints or OptimizerConstraints()
        self.settings = settings
        self.solver = solver
        self.seed = seed
        self.rng = random.Random(seed)
        self.history = TrainingHistory()
        self.optimization_results: List[OptimizationResult] = []
        self.metrics: Optional[PerformanceMetrics] = None

    @property
    def current_episode(self) -> int:
        return self.history.next_episode

    def set_weights(self, **kwargs: float) -> RewardWeights:
        self.weights = replace(self.weights, **kwargs)
        return self.weights

    def run_optimization(self) -> List[OptimizationResult]:
        summary = schedule_jobs(self.jobs, self.table, self.constraints, solver=self.solver)
        self.jobs = apply_results(self.jobs, summary.results)
        self.optimization_results = summary.results
        self.metrics = performance_metrics(self.jobs, self.table)
        return summary.results

    def run_episode(self) -> EpisodeResult:
        result = run_episode(self.jobs, self.table, self.weights, self.current_episode,
                             rng=self.rng, settings=self.settings, step_minutes=self.constraints.step_minutes)
        self.jobs = apply_actions(self.jobs, result, self.table.cycle_hours)
        self.history.append(result)
        self.metrics = performance_metrics(self.jobs, self.table)
        return result

    def update_job_schedule(self, job_id: str, departure: Minutes) -> Job:
        for i, job in enumerate(self.jobs):
            if job.id == job_id:
                self.jobs[i] = job.with_departure(departure)
                self.metrics = performance_metrics(self.jobs, self.table)
                return self.jobs[i]
        raise KeyError(f"Job {job_id} not found")

    def reset(self) -> None:
        self.jobs = list(self._initial_jobs)
        self.rng = random.Random(self.seed)
        self.history = TrainingHistory()
        self.optimization_results = []
        self.metrics = None
