import pytest

from railgrid.core.energy import (
    hourly_energy_profile,
    job_energy_cost,
    simulate_daily_carbon,
    simulate_daily_cost,
    tariff_cost,
    transit_hours,
)
from railgrid.core.models import Job, JobClass
from railgrid.core.signal import SignalSlot, SignalTable


def _table():
    slots = [SignalSlot(price=100, carbon_intensity=300, surplus=0.0) for _ in range(24)]
    slots[12] = SignalSlot(price=50, carbon_intensity=100, surplus=40.0, favorable=True, incentive=True)
    return SignalTable(slots)


def _job(start=360, end=480, energy=900):
    return Job(id="FR-1", job_class=JobClass.FREIGHT, corridor="x", start=start, end=end,
               energy=energy, flexibility=0.8, priority=2)


def test_transit_hours_include_arrival_hour():
    assert transit_hours(720, 120) == [12, 13, 14]
    assert transit_hours(750, 20) == [12]


def test_departure_basis_prices_departure_hour():
    assert job_energy_cost(_job(), 720, _table()) == pytest.approx(900 * 50)


def test_transit_basis_averages_touched_hours():
    cost = job_energy_cost(_job(), 720, _table(), basis="transit")
    assert cost == pytest.approx(900 * (50 + 100 + 100) / 3)


def test_unknown_basis_rejected():
    with pytest.raises(ValueError):
        job_energy_cost(_job(), 720, _table(), basis="average")


def test_hourly_profile_spreads_energy_evenly():
    profile = hourly_energy_profile([_job()])
    assert profile[6] == profile[7] == profile[8] == pytest.approx(300)
    assert sum(profile) == pytest.approx(900)


def test_hourly_profile_uses_placement_when_optimized():
    moved = _job().with_departure(720)
    profile = hourly_energy_profile([moved], optimized=True)
    assert profile[12] == pytest.approx(300)
    assert profile[6] == 0


def test_tariff_credits_stack():
    slot = _table()[12]
    assert tariff_cost(10, slot) == pytest.approx(0.0)
    assert tariff_cost(10, _table()[0]) == pytest.approx(1000.0)


def test_daily_cost_and_carbon():
    energy = [0.0] * 24
    energy[6] = 1000.0
    energy[12] = 1000.0
    cost = simulate_daily_cost(_table(), energy)
    assert cost["total_cost"] == 100_000
    assert cost["favorable_savings"] == 20_000
    assert cost["incentive_savings"] == 30_000
    assert len(cost["hourly_breakdown"]) == 24

    carbon = simulate_daily_carbon(_table(), energy)
    assert carbon["total_emission_kg"] == 400
    assert carbon["hourly_emission_kg"][12] == 100
