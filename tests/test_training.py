import random

from railgrid.core.models import EpisodeResult
from railgrid.schemas import load_scenario
from railgrid.sim import training as training_mod
from railgrid.sim.training import TrainingHistory, run_training


def _episode(n, reward):
    return EpisodeResult(episode_number=n, total_reward=reward, reward_history=(reward,), on_time_rate=100,
                         signal_utilization=0, violation_count=0, cost_savings=0, carbon_reduction=0.0,
                         actions=(), epsilon=0.3)


def test_best_seen_reward_never_decreases_over_100_episodes():
    jobs, table, weights = load_scenario()
    outcome = run_training(jobs, table, weights, episodes=100, rng=random.Random(11))
    history = outcome.history
    assert len(history) == 100
    assert [e.episode_number for e in history.episodes] == list(range(100))
    best_seen = history.best_seen_rewards()
    assert all(b >= a for a, b in zip(best_seen, best_seen[1:]))
    assert outcome.best_result.total_reward == max(history.total_rewards())
    assert best_seen[-1] == outcome.best_result.total_reward


def test_history_continues_episode_numbering():
    jobs, table, weights = load_scenario()
    history = TrainingHistory()
    run_training(jobs, table, weights, episodes=3, history=history)
    run_training(jobs, table, weights, episodes=2, history=history)
    assert [e.episode_number for e in history.episodes] == [0, 1, 2, 3, 4]


def test_callback_sees_every_episode():
    jobs, table, weights = load_scenario()
    seen = []
    run_training(jobs, table, weights, episodes=5, on_episode=seen.append)
    assert [e.episode_number for e in seen] == [0, 1, 2, 3, 4]


def test_convergence_detected_after_warmup():
    history = TrainingHistory()
    for n in range(40):
        history.append(_episode(n, 500.0))
    assert history.convergence_episode() == 21


def test_no_convergence_reports_episode_count():
    history = TrainingHistory()
    for n in range(30):
        history.append(_episode(n, 1000.0 * (n % 2)))
    assert history.convergence_episode() is None


def test_run_training_without_settling_reports_total():
    jobs, table, weights = load_scenario()
    outcome = run_training(jobs, table, weights, episodes=15)
    # too few episodes to pass the warm-up
    assert outcome.convergence_episode == 15


def test_step_minutes_reaches_every_episode(monkeypatch):
    jobs, table, weights = load_scenario()
    steps = []
    real_run_episode = training_mod.run_episode

    def recording(*args, **kwargs):
        steps.append(kwargs["step_minutes"])
        return real_run_episode(*args, **kwargs)

    monkeypatch.setattr(training_mod, "run_episode", recording)
    run_training(jobs, table, weights, episodes=3, step_minutes=60)
    assert steps == [60, 60, 60]
