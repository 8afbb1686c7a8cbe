import pytest

from railgrid.core.models import Job, JobClass, RewardWeights
from railgrid.core.reward import RewardSettings, departure_hour, evaluate
from railgrid.core.signal import SignalSlot, SignalTable


def _flat(price=100.0, overrides=None):
    overrides = overrides or {}
    return SignalTable([
        overrides.get(h, SignalSlot(price=price, carbon_intensity=300, surplus=0.0)) for h in range(24)
    ])


def _freight(**kw):
    base = dict(id="FR-1", job_class=JobClass.FREIGHT, corridor="A", start=360, end=480,
                energy=1000, flexibility=0.5, priority=2)
    base.update(kw)
    return Job(**base)


def test_on_time_is_exactly_100_at_zero_shift():
    r = evaluate(_freight(), 0, _flat())
    assert r.on_time == 100.0


def test_on_time_decays_linearly_then_penalizes_excess():
    table = _flat()
    # allowed = round(0.5 * 720) = 360
    assert evaluate(_freight(), 180, table).on_time == pytest.approx(50.0)
    assert evaluate(_freight(), -180, table).on_time == pytest.approx(50.0)
    assert evaluate(_freight(), 360, table).on_time == pytest.approx(0.0)
    assert evaluate(_freight(), 420, table).on_time == pytest.approx(-50.0)


def test_zero_flexibility_only_rewards_no_shift():
    job = _freight(flexibility=0.0)
    table = _flat()
    assert evaluate(job, 0, table).on_time == 100.0
    assert evaluate(job, 30, table).on_time == pytest.approx(-25.0)


def test_economic_component_tracks_price_against_baseline():
    cheap = _flat(overrides={6: SignalSlot(price=40, carbon_intensity=300, surplus=0)})
    assert evaluate(_freight(), 0, cheap).economic == pytest.approx(6.0)
    assert evaluate(_freight(), 0, _flat(price=160)).economic == pytest.approx(-6.0)
    # negative prices are valid oversupply signals
    assert evaluate(_freight(), 0, _flat(price=-50)).economic == pytest.approx(15.0)


def test_signal_alignment_stacks_bonuses():
    slot = SignalSlot(price=-20, carbon_intensity=150, surplus=40, favorable=True, incentive=True)
    table = _flat(overrides={6: slot})
    assert evaluate(_freight(), 0, table).signal_alignment == pytest.approx(100.0)
    single = RewardSettings(double_count_surplus=False)
    assert evaluate(_freight(), 0, table, settings=single).signal_alignment == pytest.approx(80.0)


def test_priority_penalty_beyond_grace_period():
    job = Job(id="KTX-1", job_class=JobClass.KTX, corridor="A", start=600, end=750,
              energy=4500, flexibility=0.1, priority=5)
    r = evaluate(job, 90, _flat())
    # hour 11 is inside the operating band, so only the delay term applies
    assert r.safety_penalty == pytest.approx(100.0)
    assert evaluate(job, 30, _flat()).safety_penalty == 0.0


def test_restricted_class_at_2am_hits_operating_band_penalty():
    at_two = Job(id="KTX-2", job_class=JobClass.KTX, corridor="A", start=120, end=270,
                 energy=4500, flexibility=0.1, priority=5)
    assert evaluate(at_two, 0, _flat()).safety_penalty == pytest.approx(500.0)

    moved = Job(id="KTX-3", job_class=JobClass.KTX, corridor="A", start=360, end=510,
                energy=4500, flexibility=0.1, priority=5)
    assert departure_hour(moved, -240) == 2
    assert evaluate(moved, -240, _flat()).safety_penalty >= 500.0


def test_operating_band_is_inclusive():
    late = Job(id="SRT-1", job_class=JobClass.SRT, corridor="A", start=23 * 60, end=23 * 60 + 50,
               energy=4200, flexibility=0.1, priority=5)
    early = Job(id="SRT-2", job_class=JobClass.SRT, corridor="A", start=5 * 60, end=7 * 60,
                energy=4200, flexibility=0.1, priority=5)
    assert evaluate(late, 0, _flat()).safety_penalty == 0.0
    assert evaluate(early, 0, _flat()).safety_penalty == 0.0


def test_unrestricted_class_ignores_operating_band():
    job = _freight(start=120, end=240)
    assert evaluate(job, 0, _flat()).safety_penalty == 0.0


def test_departure_hour_wraps_before_midnight():
    job = _freight(start=30, end=90)
    assert departure_hour(job, -60) == 23
    assert departure_hour(job, 1440) == 0


def test_total_is_weighted_sum():
    slot = SignalSlot(price=40, carbon_intensity=150, surplus=30, favorable=True)
    table = _flat(overrides={9: slot})
    job = Job(id="ITX-1", job_class=JobClass.ITX, corridor="A", start=420, end=600,
              energy=2800, flexibility=0.2, priority=4)
    weights = RewardWeights(w1=0.5, w2=2.0, w3=0.1, w4=1.5)
    r = evaluate(job, 120, table, weights)
    expected = 0.5 * r.on_time + 2.0 * r.economic + 0.1 * r.signal_alignment - 1.5 * r.safety_penalty
    assert r.total == pytest.approx(expected)
    assert r.safety_penalty > 0
    assert r.signal_alignment == pytest.approx(65.0)


def test_weights_are_not_normalized():
    assert not RewardWeights(w1=1, w2=1, w3=1, w4=1).is_normalized()
    assert RewardWeights().is_normalized()
    r = evaluate(_freight(), 0, _flat(), RewardWeights(w1=2, w2=0, w3=0, w4=0))
    assert r.total == pytest.approx(200.0)
