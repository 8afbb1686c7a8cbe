from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

Minutes = int

CYCLE_HOURS = 24
CYCLE_MINUTES: Minutes = CYCLE_HOURS * 60
HALF_CYCLE_MINUTES: Minutes = CYCLE_MINUTES // 2


class JobClass(str, Enum):
    KTX = "KTX"
    SRT = "SRT"
    ITX = "ITX"
    MUGUNGHWA = "MUGUNGHWA"
    FREIGHT = "FREIGHT"
    DEADHEAD = "DEADHEAD"


@dataclass(frozen=True)
class ClassProfile:
    flexibility: float
    priority: int
    avg_energy: float  # kWh
    min_headway: Minutes  # minimum spacing between departures on a corridor


CLASS_PROFILES: Dict[JobClass, ClassProfile] = {
    JobClass.KTX: ClassProfile(flexibility=0.1, priority=5, avg_energy=4500, min_headway=10),
    JobClass.SRT: ClassProfile(flexibility=0.1, priority=5, avg_energy=4200, min_headway=10),
    JobClass.ITX: ClassProfile(flexibility=0.2, priority=4, avg_energy=2800, min_headway=15),
    JobClass.MUGUNGHWA: ClassProfile(flexibility=0.3, priority=3, avg_energy=2200, min_headway=20),
    JobClass.FREIGHT: ClassProfile(flexibility=0.8, priority=2, avg_energy=3500, min_headway=30),
    JobClass.DEADHEAD: ClassProfile(flexibility=1.0, priority=1, avg_energy=1500, min_headway=20),
}

# Express passenger classes bound to the daytime operating band
RESTRICTED_CLASSES = frozenset({JobClass.KTX, JobClass.SRT})


@dataclass(frozen=True)
class Scheduled:
    """Job runs at its timetabled departure."""

    @property
    def offset(self) -> Minutes:
        return 0


@dataclass(frozen=True)
class Optimized:
    offset: Minutes


Placement = Union[Scheduled, Optimized]


@dataclass
class Job:
    id: str
    job_class: JobClass
    corridor: str
    start: Minutes  # scheduled departure, minutes into the cycle
    end: Minutes  # scheduled arrival
    energy: float  # kWh consumed uniformly over the run
    flexibility: float  # fraction of the half cycle the departure may move
    priority: int  # 1..5, higher = less tolerant of delay
    placement: Placement = field(default_factory=Scheduled)
    name: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    passengers: Optional[int] = None
    cargo_tonnes: Optional[float] = None

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Job {self.id}: end ({self.end}) must be after start ({self.start})")

    @classmethod
    def from_class(cls, id: str, job_class: JobClass, corridor: str, start: Minutes, end: Minutes,
                   energy: Optional[float] = None, flexibility: Optional[float] = None,
                   priority: Optional[int] = None, **kwargs) -> "Job":
        # unset energy, flexibility and priority fall back to the class profile
        profile = CLASS_PROFILES[JobClass(job_class)]
        return cls(
            id=id,
            job_class=JobClass(job_class),
            corridor=corridor,
            start=start,
            end=end,
            energy=profile.avg_energy if energy is None else energy,
            flexibility=profile.flexibility if flexibility is None else flexibility,
            priority=profile.priority if priority is None else priority,
            **kwargs,
        )

    @property
    def duration(self) -> Minutes:
        return self.end - self.start

    @property
    def offset(self) -> Minutes:
        return self.placement.offset

    @property
    def is_optimized(self) -> bool:
        return isinstance(self.placement, Optimized)

    @property
    def departure(self) -> Minutes:
        return self.start + self.offset

    @property
    def arrival(self) -> Minutes:
        return self.end + self.offset

    def max_shift(self, half_cycle: Minutes = HALF_CYCLE_MINUTES) -> Minutes:
        return int(round(self.flexibility * half_cycle))

    def with_offset(self, offset: Minutes) -> "Job":
        return replace(self, placement=Optimized(int(offset)))

    def with_departure(self, departure: Minutes) -> "Job":
        return self.with_offset(int(departure) - self.start)

    def rescheduled(self) -> "Job":
        return replace(self, placement=Scheduled())


@dataclass(frozen=True)
class CorridorPlacement:
    corridor_id: str
    committed_start: Minutes


@dataclass(frozen=True)
class RewardWeights:
    w1: float = 0.3  # on-time
    w2: float = 0.4  # economic
    w3: float = 0.25  # signal alignment
    w4: float = 0.05  # safety penalty

    def is_normalized(self, tol: float = 1e-9) -> bool:
        return abs(self.w1 + self.w2 + self.w3 + self.w4 - 1.0) <= tol


@dataclass(frozen=True)
class RewardBreakdown:
    on_time: float
    economic: float
    signal_alignment: float
    safety_penalty: float
    total: float


@dataclass
class OptimizerConstraints:
    # Override per-class headway; missing classes use CLASS_PROFILES
    min_headway: Dict[JobClass, Minutes] = field(default_factory=dict)
    step_minutes: Minutes = 30
    half_cycle_minutes: Minutes = HALF_CYCLE_MINUTES
    fixed_flexibility_threshold: float = 0.3
    favorable_discount: float = 0.9
    favorable_margin: float = 0.95
    # Only consider favorable runs at least as long as the job
    run_must_cover_duration: bool = False
    cost_basis: str = "departure"  # 'departure' | 'transit'

    def headway_for(self, job_class: JobClass) -> Minutes:
        if job_class in self.min_headway:
            return int(self.min_headway[job_class])
        return CLASS_PROFILES[job_class].min_headway


@dataclass(frozen=True)
class OptimizationResult:
    job: Job
    original_start: Minutes
    optimized_start: Minutes
    original_cost: float
    optimized_cost: float
    cost_savings: float
    favorable: bool
    delay_minutes: Minutes
    fallback: bool = False


@dataclass
class OptimizationSummary:
    results: List[OptimizationResult]
    total_original_cost: int
    total_optimized_cost: int
    total_savings: int
    favorable_utilization: int  # percent of jobs departing in a favorable hour


@dataclass(frozen=True)
class Action:
    job_id: str
    shift: Minutes


@dataclass(frozen=True)
class EpisodeResult:
    episode_number: int
    total_reward: float
    reward_history: Tuple[float, ...]
    on_time_rate: int
    signal_utilization: int
    violation_count: int
    cost_savings: int
    carbon_reduction: float
    actions: Tuple[Action, ...]
    epsilon: float
