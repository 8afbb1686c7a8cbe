import logging
from typing import Dict, List, Optional, Sequence, Tuple
import pulp

from .energy import job_energy_cost
from .errors import InfeasibleWindow, safe_ratio
from .greedy_scheduler import feasible_window
from .models import Job, Minutes, OptimizationResult, OptimizationSummary, OptimizerConstraints
from .signal import SignalTable

logger = logging.getLogger(__name__)

# MILP over the same departure grid the greedy pass scans.
# One binary per (job, candidate departure); each job takes exactly one.
# Jobs sharing a corridor may not take departures closer than the larger of
# their two headways. Objective: minimize total energy cost, with the
# favorable-run discount applied to favorable-window starts.


def _candidates(job: Job, table: SignalTable, constraints: OptimizerConstraints, run_starts: Dict[int, bool]) -> Tuple[List[Tuple[Minutes, float]], bool]:
    """Candidate (departure, cost) pairs for one job, and whether it fell back to its scheduled start."""
    scheduled = [(job.start, job_energy_cost(job, job.start, table, constraints.cost_basis))]
    try:
        lower, upper = feasible_window(job, constraints)
    except InfeasibleWindow as exc:
        logger.warning("%s; keeping scheduled departure", exc)
        return scheduled, True
    if job.flexibility < constraints.fixed_flexibility_threshold:
        return scheduled, False
    deps = set(range(lower, upper + 1, constraints.step_minutes))
    deps.add(job.start)
    deps.update(m for m in run_starts if lower <= m <= upper)
    out: List[Tuple[Minutes, float]] = []
    for dep in sorted(deps):
        cost = job_energy_cost(job, dep, table, constraints.cost_basis)
        if dep in run_starts:
            cost *= constraints.favorable_discount
        out.append((dep, cost))
    return out, False


def schedule_jobs_milp(
    jobs: Sequence[Job],
    table: SignalTable,
    constraints: Optional[OptimizerConstraints] = None,
    time_limit: Optional[int] = None,
) -> OptimizationSummary:
    constraints = constraints or OptimizerConstraints()
    n = len(jobs)
    if n == 0:
        return OptimizationSummary(results=[], total_original_cost=0, total_optimized_cost=0,
                                   total_savings=0, favorable_utilization=0)

    run_starts = {r.start_minute: True for r in table.favorable_runs()}
    built = [_candidates(j, table, constraints, run_starts) for j in jobs]
    cands = [options for options, _ in built]

    prob = pulp.LpProblem("corridor_departures", pulp.LpMinimize)
    x: Dict[Tuple[int, int], pulp.LpVariable] = {}
    for i, options in enumerate(cands):
        for k in range(len(options)):
            x[(i, k)] = pulp.LpVariable(f"x_j{i}_c{k}", lowBound=0, upBound=1, cat=pulp.LpBinary)
        prob += pulp.lpSum([x[(i, k)] for k in range(len(options))]) == 1

    # Pairwise headway exclusion on shared corridors
    for i in range(n):
        for j in range(i + 1, n):
            ji, jj = jobs[i], jobs[j]
            if ji.corridor != jj.corridor:
                continue
            # two fixed jobs are never moved, so their spacing is not a constraint
            if len(cands[i]) == 1 and len(cands[j]) == 1:
                continue
            h = max(constraints.headway_for(ji.job_class), constraints.headway_for(jj.job_class))
            for a, (dep_a, _) in enumerate(cands[i]):
                for b, (dep_b, _) in enumerate(cands[j]):
                    if abs(dep_a - dep_b) < h:
                        prob += x[(i, a)] + x[(j, b)] <= 1

    prob += pulp.lpSum([cost * x[(i, k)] for i, options in enumerate(cands) for k, (_, cost) in enumerate(options)])

    if time_limit:
        prob.solve(pulp.PULP_CBC_CMD(msg=False, timeLimit=time_limit))
    else:
        prob.solve(pulp.PULP_CBC_CMD(msg=False))
    status = pulp.LpStatus[prob.status]
    if status != "Optimal":
        raise RuntimeError(f"MILP departure assignment not solved: {status}")

    results: List[OptimizationResult] = []
    for i, job in enumerate(jobs):
        k = max(range(len(cands[i])), key=lambda c: pulp.value(x[(i, c)]) or 0.0)
        dep, cost = cands[i][k]
        original_cost = job_energy_cost(job, job.start, table, constraints.cost_basis)
        fixed = len(cands[i]) == 1
        results.append(OptimizationResult(
            job=job.rescheduled() if fixed else job.with_departure(dep),
            original_start=job.start,
            optimized_start=dep,
            original_cost=original_cost,
            optimized_cost=cost,
            cost_savings=original_cost - cost,
            favorable=table.slot_at_minute(dep).favorable,
            delay_minutes=dep - job.start,
            fallback=built[i][1],
        ))

    total_original = sum(r.original_cost for r in results)
    total_optimized = sum(r.optimized_cost for r in results)
    favorable = sum(1 for r in results if r.favorable)
    return OptimizationSummary(
        results=results,
        total_original_cost=round(total_original),
        total_optimized_cost=round(total_optimized),
        total_savings=round(total_original - total_optimized),
        favorable_utilization=round(100 * safe_ratio(favorable, n)),
    )
