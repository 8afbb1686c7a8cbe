import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .energy import job_energy_cost
from .errors import InfeasibleWindow, safe_ratio
from .models import (
    CYCLE_MINUTES,
    CorridorPlacement,
    Job,
    Minutes,
    OptimizationResult,
    OptimizationSummary,
    OptimizerConstraints,
)
from .signal import SignalTable

logger = logging.getLogger(__name__)

# Greedy departure optimizer:
# - Iterate jobs by priority desc (stable on input order)
# - For each flexible job, scan its departure window on a fixed grid, skipping
#   departures too close to jobs already committed on the same corridor
# - Give favorable-window starts a discount, then commit the cheapest departure


def feasible_window(job: Job, constraints: OptimizerConstraints) -> Tuple[Minutes, Minutes]:
    max_shift = job.max_shift(constraints.half_cycle_minutes)
    lower = max(0, job.start - max_shift)
    upper = min(CYCLE_MINUTES - job.duration, job.start + max_shift)
    if lower > upper:
        raise InfeasibleWindow(job.id, lower, upper)
    return lower, upper


def optimize_schedule(
    jobs: Sequence[Job],
    table: SignalTable,
    constraints: Optional[OptimizerConstraints] = None,
) -> OptimizationSummary:
    constraints = constraints or OptimizerConstraints()
    # occupancy[corridor] = placements committed earlier in this pass
    occupancy: Dict[str, List[CorridorPlacement]] = {}
    results: List[OptimizationResult] = []

    # sorted() is stable, so equal priorities keep input order
    for job in sorted(jobs, key=lambda j: -j.priority):
        result = optimize_job(job, table, occupancy, constraints)
        occupancy.setdefault(job.corridor, []).append(
            CorridorPlacement(corridor_id=job.corridor, committed_start=result.optimized_start)
        )
        results.append(result)

    total_original = sum(r.original_cost for r in results)
    total_optimized = sum(r.optimized_cost for r in results)
    favorable = sum(1 for r in results if r.favorable)
    return OptimizationSummary(
        results=results,
        total_original_cost=round(total_original),
        total_optimized_cost=round(total_optimized),
        total_savings=round(total_original - total_optimized),
        favorable_utilization=round(100 * safe_ratio(favorable, len(results))),
    )


def optimize_job(
    job: Job,
    table: SignalTable,
    occupancy: Dict[str, List[CorridorPlacement]],
    constraints: OptimizerConstraints,
) -> OptimizationResult:
    original_cost = job_energy_cost(job, job.start, table, constraints.cost_basis)

    try:
        lower, upper = feasible_window(job, constraints)
    except InfeasibleWindow as exc:
        logger.warning("%s; keeping scheduled departure", exc)
        return _unchanged(job, table, original_cost, fallback=True)

    if job.flexibility < constraints.fixed_flexibility_threshold:
        return _unchanged(job, table, original_cost)

    headway = constraints.headway_for(job.job_class)
    committed = occupancy.get(job.corridor, [])

    def conflicts(dep: Minutes) -> bool:
        return any(abs(p.committed_start - dep) < headway for p in committed)

    best_dep: Optional[Minutes] = None
    best_cost = 0.0
    if not conflicts(job.start):
        best_dep, best_cost = job.start, original_cost

    for dep in range(lower, upper + 1, constraints.step_minutes):
        if conflicts(dep):
            continue
        cost = job_energy_cost(job, dep, table, constraints.cost_basis)
        if best_dep is None or cost < best_cost:
            best_dep, best_cost = dep, cost

    # favorable-window starts get preferential dispatch
    min_minutes = job.duration if constraints.run_must_cover_duration else 0
    for run in table.favorable_runs(min_minutes=min_minutes):
        dep = run.start_minute
        if dep < lower or dep > upper or conflicts(dep):
            continue
        discounted = job_energy_cost(job, dep, table, constraints.cost_basis) * constraints.favorable_discount
        if best_dep is None or discounted < best_cost * constraints.favorable_margin:
            best_dep, best_cost = dep, discounted

    if best_dep is None:
        logger.info("Job %s: every departure in [%d, %d] conflicts on %s; keeping scheduled departure",
                    job.id, lower, upper, job.corridor)
        return _unchanged(job, table, original_cost, fallback=True)

    return OptimizationResult(
        job=job.with_departure(best_dep),
        original_start=job.start,
        optimized_start=best_dep,
        original_cost=original_cost,
        optimized_cost=best_cost,
        cost_savings=original_cost - best_cost,
        favorable=table.slot_at_minute(best_dep).favorable,
        delay_minutes=best_dep - job.start,
    )


def _unchanged(job: Job, table: SignalTable, cost: float, fallback: bool = False) -> OptimizationResult:
    return OptimizationResult(
        job=job.rescheduled(),
        original_start=job.start,
        optimized_start=job.start,
        original_cost=cost,
        optimized_cost=cost,
        cost_savings=0.0,
        favorable=table.slot_at_minute(job.start).favorable,
        delay_minutes=0,
        fallback=fallback,
    )


def apply_results(jobs: Sequence[Job], results: Sequence[OptimizationResult]) -> List[Job]:
    # map results back onto the caller's jobs, preserving input order
    by_id = {r.job.id: r.job for r in results}
    return [by_id.get(j.id, j) for j in jobs]


def headway_violations(results: Sequence[OptimizationResult], constraints: Optional[OptimizerConstraints] = None) -> List[Tuple[str, str]]:
    """Pairs of jobs whose committed departures sit closer than the later job's headway."""
    constraints = constraints or OptimizerConstraints()
    out: List[Tuple[str, str]] = []
    for i, later in enumerate(results):
        headway = constraints.headway_for(later.job.job_class)
        for earlier in results[:i]:
            if earlier.job.corridor != later.job.corridor:
                continue
            if abs(earlier.optimized_start - later.optimized_start) < headway:
                out.append((earlier.job.id, later.job.id))
    return out
