import random

import pytest

from railgrid.core.models import Job, JobClass
from railgrid.core.signal import SignalSlot, SignalTable
from railgrid.schemas import load_scenario
from railgrid.sim.reporting import gantt_rows
from railgrid.sim.session import SimulationSession


class _AlwaysExplore(random.Random):
    def random(self):
        return 0.0

    def randint(self, a, b):
        return a


def _session(**kw):
    jobs, table, weights = load_scenario()
    return SimulationSession(jobs, table, weights, seed=5, **kw)


def test_optimization_updates_owned_jobs_and_metrics():
    s = _session()
    results = s.run_optimization()
    assert len(results) == len(s.jobs)
    moved = {r.job.id for r in results if r.job.is_optimized}
    assert moved == {j.id for j in s.jobs if j.is_optimized}
    assert s.metrics is not None
    assert s.metrics.operations.total_jobs == len(s.jobs)


def test_episodes_append_to_history():
    s = _session()
    first = s.run_episode()
    second = s.run_episode()
    assert (first.episode_number, second.episode_number) == (0, 1)
    assert len(s.history) == 2
    assert s.current_episode == 2


def test_same_seed_same_episodes():
    a, b = _session(), _session()
    assert a.run_episode() == b.run_episode()


def test_manual_reschedule():
    s = _session()
    job = s.update_job_schedule("DH-3009", 720)
    assert job.departure == 720
    assert job.arrival - job.departure == job.duration
    with pytest.raises(KeyError):
        s.update_job_schedule("NOPE", 0)


def test_set_weights_replaces_only_named_fields():
    s = _session()
    weights = s.set_weights(w2=1.0)
    assert weights.w2 == 1.0
    assert weights.w1 == 0.3


def test_reset_restores_schedule():
    s = _session()
    s.run_optimization()
    s.run_episode()
    s.reset()
    assert all(not j.is_optimized for j in s.jobs)
    assert len(s.history) == 0
    assert s.metrics is None


def test_out_of_cycle_episode_leaves_schedule_and_metrics_untouched():
    slots = [SignalSlot(price=100, carbon_intensity=300, surplus=0.0) for _ in range(24)]
    slots[12] = SignalSlot(price=10, carbon_intensity=120, surplus=0.0, favorable=True)
    early = Job(id="DH-1", job_class=JobClass.DEADHEAD, corridor="A", start=30, end=120,
                energy=1500, flexibility=1.0, priority=1)
    s = SimulationSession([early], SignalTable(slots))
    s.rng = _AlwaysExplore()
    result = s.run_episode()
    assert result.actions[0].shift == -720
    assert result.violation_count == 1
    assert s.jobs[0].departure == 30
    assert not s.jobs[0].is_optimized
    assert gantt_rows(s.jobs)[0]["start"] == 30
    assert s.metrics.daily_cost.savings == 0
