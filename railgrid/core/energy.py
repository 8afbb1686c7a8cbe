from __future__ import annotations
from typing import Dict, List, Sequence

from .models import CYCLE_HOURS, Job, Minutes
from .signal import SignalSlot, SignalTable

INCENTIVE_CREDIT = 30.0  # per kWh during demand-response incentive hours
FAVORABLE_CREDIT = 20.0  # per kWh during favorable windows


def transit_hours(departure: Minutes, duration: Minutes) -> List[int]:
    first = departure // 60
    last = (departure + duration) // 60
    # a run never spans more than one full cycle
    return list(range(first, min(last, first + CYCLE_HOURS - 1) + 1))


def job_energy_cost(job: Job, departure: Minutes, table: SignalTable, basis: str = "departure") -> float:
    """Energy cost of running ``job`` from ``departure``.

    'departure' prices the whole run at the departure hour; 'transit' averages
    the price over every hour the run touches.
    """
    if basis == "transit":
        hours = transit_hours(departure, job.duration)
        avg_price = sum(table[h].price for h in hours) / len(hours)
        return job.energy * avg_price
    if basis != "departure":
        raise ValueError(f"Unknown cost basis: {basis}")
    return job.energy * table.slot_at_minute(departure).price


def hourly_energy_profile(jobs: Sequence[Job], optimized: bool = False) -> List[float]:
    # energy spread evenly over every hour touched, clipped to the cycle
    profile = [0.0] * CYCLE_HOURS
    for job in jobs:
        dep = job.departure if optimized else job.start
        arr = job.arrival if optimized else job.end
        start_hour = dep // 60
        end_hour = arr // 60
        per_hour = job.energy / (end_hour - start_hour + 1)
        for h in range(max(0, start_hour), min(end_hour, CYCLE_HOURS - 1) + 1):
            profile[h] += per_hour
    return profile


def tariff_cost(energy: float, slot: SignalSlot) -> float:
    rate = slot.price
    if slot.incentive:
        rate -= INCENTIVE_CREDIT
    if slot.favorable:
        rate -= FAVORABLE_CREDIT
    return energy * rate


def simulate_daily_cost(table: SignalTable, hourly_energy: Sequence[float]) -> Dict[str, object]:
    total = 0.0
    favorable_savings = 0.0
    incentive_savings = 0.0
    breakdown = []
    for hour, slot in enumerate(table):
        energy = hourly_energy[hour] if hour < len(hourly_energy) else 0.0
        cost = tariff_cost(energy, slot)
        total += cost
        if slot.favorable:
            favorable_savings += energy * FAVORABLE_CREDIT
        if slot.incentive:
            incentive_savings += energy * INCENTIVE_CREDIT
        breakdown.append({"hour": hour, "energy": energy, "cost": cost, "price": slot.price})
    return {
        "total_cost": round(total),
        "hourly_breakdown": breakdown,
        "favorable_savings": round(favorable_savings),
        "incentive_savings": round(incentive_savings),
    }


def simulate_daily_carbon(table: SignalTable, hourly_energy: Sequence[float]) -> Dict[str, object]:
    # kWh * gCO2/kWh -> grams; reported in kg
    hourly = []
    for hour, slot in enumerate(table):
        energy = hourly_energy[hour] if hour < len(hourly_energy) else 0.0
        hourly.append(energy * slot.carbon_intensity)
    return {
        "total_emission_kg": round(sum(hourly) / 1000),
        "hourly_emission_kg": [round(g / 1000) for g in hourly],
        "avg_intensity": round(sum(s.carbon_intensity for s in table) / len(table)),
    }
