import logging
from typing import Optional, Sequence

from railgrid.core.models import Job, OptimizationSummary, OptimizerConstraints
from railgrid.core.signal import SignalTable
from railgrid.core.greedy_scheduler import optimize_schedule as greedy_schedule
from railgrid.core.milp_scheduler import schedule_jobs_milp

logger = logging.getLogger(__name__)


def schedule_jobs(
    jobs: Sequence[Job],
    table: SignalTable,
    constraints: Optional[OptimizerConstraints] = None,
    solver: str = "greedy",
    milp_time_limit: Optional[int] = None,
) -> OptimizationSummary:
    if solver == "milp":
        try:
            return schedule_jobs_milp(jobs, table, constraints, time_limit=milp_time_limit)
        except Exception as exc:
            # Fallback to greedy if the MILP is infeasible or the solver is unavailable
            logger.warning("MILP solver failed (%s); falling back to greedy", exc)
            return greedy_schedule(jobs, table, constraints)
    if solver != "greedy":
        raise ValueError(f"Unknown solver: {solver}")
    return greedy_schedule(jobs, table, constraints)
