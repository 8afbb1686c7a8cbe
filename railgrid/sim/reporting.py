import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from railgrid.core.errors import safe_ratio
from railgrid.core.models import EpisodeResult, Job, Minutes, OptimizationResult
from railgrid.core.signal import SignalTable

CARBON_PER_TREE_KG = 22  # annual CO2 uptake of one tree
CARBON_CREDIT_PRICE = 25000  # per tonne CO2
IMPLEMENTATION_COST = 5_000_000_000
OPERATING_DAYS_PER_YEAR = 365
PEAK_PRICE = 150
PUNCTUAL_MINUTES = 30
DAYS_PER_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


@dataclass(frozen=True)
class CostAnalysis:
    baseline_cost: int
    optimized_cost: int
    savings: int
    savings_percent: int
    peak_avoidance: int
    favorable_hits: int


@dataclass(frozen=True)
class CarbonAnalysis:
    baseline_emission: int  # kg CO2
    optimized_emission: int
    reduction: int
    reduction_percent: int
    trees_equivalent: int
    carbon_credit_value: int


@dataclass(frozen=True)
class ROIAnalysis:
    implementation_cost: float
    annual_savings: int
    payback_years: float  # math.inf when nothing is saved
    five_year_roi: int
    ten_year_roi: int


@dataclass(frozen=True)
class OperationalMetrics:
    total_jobs: int
    optimized_jobs: int
    avg_delay_minutes: int
    punctuality_rate: int
    favorable_utilization: int


@dataclass(frozen=True)
class PerformanceMetrics:
    daily_cost: CostAnalysis
    daily_carbon: CarbonAnalysis
    roi: ROIAnalysis
    operations: OperationalMetrics


@dataclass(frozen=True)
class AnnualProjection:
    monthly_savings: List[int]
    cumulative_savings: List[int]
    annual_savings: int
    annual_carbon_reduction: int


def _departure(job: Job, optimized: Optional[Mapping[str, Minutes]]) -> Minutes:
    # explicit override map first, then the job's own placement
    if optimized is not None and job.id in optimized:
        return optimized[job.id]
    return job.departure


def _percent(part: float, whole: float) -> int:
    return round(100 * safe_ratio(part, whole))


def analyze_cost(jobs: Sequence[Job], table: SignalTable, optimized: Optional[Mapping[str, Minutes]] = None) -> CostAnalysis:
    baseline = 0.0
    after = 0.0
    peak_avoidance = 0
    favorable_hits = 0
    for job in jobs:
        before_slot = table.slot_at_minute(job.start)
        after_slot = table.slot_at_minute(_departure(job, optimized))
        baseline += job.energy * before_slot.price
        after += job.energy * after_slot.price
        if before_slot.price >= PEAK_PRICE and after_slot.price < PEAK_PRICE:
            peak_avoidance += 1
        if after_slot.favorable:
            favorable_hits += 1
    savings = baseline - after
    return CostAnalysis(
        baseline_cost=round(baseline),
        optimized_cost=round(after),
        savings=round(savings),
        savings_percent=_percent(savings, baseline) if baseline > 0 else 0,
        peak_avoidance=peak_avoidance,
        favorable_hits=favorable_hits,
    )


def analyze_carbon(jobs: Sequence[Job], table: SignalTable, optimized: Optional[Mapping[str, Minutes]] = None) -> CarbonAnalysis:
    baseline = 0.0
    after = 0.0
    for job in jobs:
        baseline += job.energy * table.slot_at_minute(job.start).carbon_intensity / 1000.0
        after += job.energy * table.slot_at_minute(_departure(job, optimized)).carbon_intensity / 1000.0
    reduction = baseline - after
    return CarbonAnalysis(
        baseline_emission=round(baseline),
        optimized_emission=round(after),
        reduction=round(reduction),
        reduction_percent=_percent(reduction, baseline) if baseline > 0 else 0,
        trees_equivalent=round(reduction * OPERATING_DAYS_PER_YEAR / CARBON_PER_TREE_KG),
        carbon_credit_value=round(reduction * OPERATING_DAYS_PER_YEAR / 1000.0 * CARBON_CREDIT_PRICE),
    )


def roi_percent(annual_savings: float, implementation_cost: float, years: int) -> float:
    return 100 * safe_ratio(annual_savings * years - implementation_cost, implementation_cost)


def analyze_roi(cost: CostAnalysis, implementation_cost: float = IMPLEMENTATION_COST) -> ROIAnalysis:
    annual = cost.savings * OPERATING_DAYS_PER_YEAR
    payback = implementation_cost / annual if annual > 0 else math.inf
    return ROIAnalysis(
        implementation_cost=implementation_cost,
        annual_savings=round(annual),
        payback_years=round(payback, 1) if math.isfinite(payback) else payback,
        five_year_roi=round(roi_percent(annual, implementation_cost, 5)),
        ten_year_roi=round(roi_percent(annual, implementation_cost, 10)),
    )


def operational_metrics(jobs: Sequence[Job], cost: CostAnalysis, optimized: Optional[Mapping[str, Minutes]] = None) -> OperationalMetrics:
    total_delay = 0
    punctual = 0
    optimized_count = 0
    for job in jobs:
        if not (job.is_optimized or (optimized is not None and job.id in optimized)):
            continue
        optimized_count += 1
        delay = abs(_departure(job, optimized) - job.start)
        total_delay += delay
        if delay <= PUNCTUAL_MINUTES:
            punctual += 1
    return OperationalMetrics(
        total_jobs=len(jobs),
        optimized_jobs=optimized_count,
        avg_delay_minutes=round(safe_ratio(total_delay, optimized_count)),
        punctuality_rate=_percent(punctual, len(jobs)),
        favorable_utilization=_percent(cost.favorable_hits, len(jobs)),
    )


def performance_metrics(
    jobs: Sequence[Job],
    table: SignalTable,
    optimized: Optional[Mapping[str, Minutes]] = None,
    implementation_cost: float = IMPLEMENTATION_COST,
) -> PerformanceMetrics:
    cost = analyze_cost(jobs, table, optimized)
    return PerformanceMetrics(
        daily_cost=cost,
        daily_carbon=analyze_carbon(jobs, table, optimized),
        roi=analyze_roi(cost, implementation_cost),
        operations=operational_metrics(jobs, cost, optimized),
    )


analyze = performance_metrics


def project_annual(metrics: PerformanceMetrics) -> AnnualProjection:
    daily_savings = metrics.daily_cost.savings
    monthly = [round(daily_savings * days) for days in DAYS_PER_MONTH]
    cumulative: List[int] = []
    running = 0
    for m in monthly:
        running += m
        cumulative.append(running)
    return AnnualProjection(
        monthly_savings=monthly,
        cumulative_savings=cumulative,
        annual_savings=round(daily_savings * OPERATING_DAYS_PER_YEAR),
        annual_carbon_reduction=round(metrics.daily_carbon.reduction * OPERATING_DAYS_PER_YEAR),
    )


def summarize_results(results: Sequence[OptimizationResult]) -> List[Dict[str, Any]]:
    return [
        {
            "job": r.job.id,
            "corridor": r.job.corridor,
            "original_start": r.original_start,
            "optimized_start": r.optimized_start,
            "original_cost": round(r.original_cost),
            "optimized_cost": round(r.optimized_cost),
            "savings": round(r.cost_savings),
            "favorable": r.favorable,
            "delay_minutes": r.delay_minutes,
        }
        for r in results
    ]


def summarize_episode(episode: EpisodeResult) -> Dict[str, Any]:
    d = asdict(episode)
    d["reward_history"] = list(episode.reward_history)
    d["actions"] = [{"job_id": a.job_id, "shift": a.shift} for a in episode.actions]
    return d


def gantt_rows(jobs: Sequence[Job]) -> List[Dict[str, Any]]:
    # one entry per job: scheduled bar plus the resolved (possibly shifted) bar
    return [
        {
            "job": j.id,
            "corridor": j.corridor,
            "class": j.job_class.value,
            "scheduled_start": j.start,
            "scheduled_end": j.end,
            "start": j.departure,
            "end": j.arrival,
        }
        for j in jobs
    ]
