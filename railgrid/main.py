import argparse
import json
import logging
import random

from railgrid.config import RailGridConfig
from railgrid.core.solver import schedule_jobs
from railgrid.core.greedy_scheduler import apply_results
from railgrid.schemas import load_scenario
from railgrid.sim.reporting import performance_metrics, project_annual, summarize_episode, summarize_results
from railgrid.sim.training import run_training


def build_parser(cfg: RailGridConfig) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Optimize train departures against an hourly grid profile")
    p.add_argument("--scenario", default=None, help="Scenario JSON with 'jobs' and 'signal' (default: bundled sample)")
    p.add_argument("--solver", default=cfg.solver, choices=["greedy", "milp"])
    p.add_argument("--episodes", type=int, default=cfg.episodes)
    p.add_argument("--seed", type=int, default=cfg.seed)
    return p


def main(argv=None) -> None:
    cfg = RailGridConfig()
    args = build_parser(cfg).parse_args(argv)
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    jobs, table, weights = load_scenario(args.scenario)
    constraints = cfg.constraints()

    summary = schedule_jobs(jobs, table, constraints, solver=args.solver)
    optimized = apply_results(jobs, summary.results)
    metrics = performance_metrics(optimized, table)

    print("Optimization:")
    for row in summarize_results(summary.results):
        print(json.dumps(row, ensure_ascii=False))
    print("Totals:", {
        "original_cost": summary.total_original_cost,
        "optimized_cost": summary.total_optimized_cost,
        "savings": summary.total_savings,
        "favorable_utilization": summary.favorable_utilization,
    })
    print("Daily cost:", vars(metrics.daily_cost))
    print("Daily carbon:", vars(metrics.daily_carbon))
    print("ROI:", vars(metrics.roi))
    print("Annual:", vars(project_annual(metrics)))

    if args.episodes > 0:
        rng = random.Random(args.seed) if args.seed is not None else None
        outcome = run_training(jobs, table, weights, episodes=args.episodes, rng=rng,
                               settings=cfg.reward_settings(), step_minutes=cfg.step_minutes)
        best = outcome.best_result
        print("Training:", {
            "episodes": len(outcome.history),
            "best_episode": best.episode_number if best else None,
            "best_reward": round(best.total_reward, 2) if best else None,
            "convergence_episode": outcome.convergence_episode,
        })
        if best is not None:
            print("Best episode:", json.dumps(summarize_episode(best)))


if __name__ == "__main__":
    main()
