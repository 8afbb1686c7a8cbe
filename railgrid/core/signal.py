from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidSignalLength
from .models import CYCLE_HOURS

FAVORABLE_SURPLUS = 20.0  # surplus above which an hour is a favorable (green) window
INCENTIVE_SURPLUS = 35.0  # surplus above which demand-response incentives are issued


@dataclass(frozen=True)
class SignalSlot:
    price: float  # may be negative under oversupply
    carbon_intensity: float  # gCO2/kWh
    surplus: float  # renewable generation minus demand, MW
    favorable: bool = False
    incentive: bool = False

    @classmethod
    def derive(cls, price: float, carbon_intensity: float, surplus: float,
               favorable_threshold: float = FAVORABLE_SURPLUS,
               incentive_threshold: float = INCENTIVE_SURPLUS) -> "SignalSlot":
        return cls(
            price=float(price),
            carbon_intensity=float(carbon_intensity),
            surplus=float(surplus),
            favorable=surplus > favorable_threshold,
            incentive=surplus > incentive_threshold,
        )


@dataclass(frozen=True)
class FavorableRun:
    start_hour: int
    end_hour: int  # inclusive
    mean_price: float

    @property
    def hours(self) -> int:
        return self.end_hour - self.start_hour + 1

    @property
    def start_minute(self) -> int:
        return self.start_hour * 60


class SignalTable:
    """Read-only hourly grid profile: price, carbon intensity and surplus per hour of the cycle."""

    def __init__(self, slots: Iterable[SignalSlot], cycle_hours: int = CYCLE_HOURS) -> None:
        slots = tuple(slots)
        if len(slots) != cycle_hours:
            raise InvalidSignalLength(len(slots), cycle_hours)
        self._slots: Tuple[SignalSlot, ...] = slots
        self.cycle_hours = cycle_hours

    @classmethod
    def from_records(cls, records: Sequence[Mapping[str, Any]],
                     favorable_threshold: float = FAVORABLE_SURPLUS,
                     incentive_threshold: float = INCENTIVE_SURPLUS) -> "SignalTable":
        # explicit flags in a record win over the surplus thresholds
        slots: List[SignalSlot] = []
        for r in records:
            slot = SignalSlot.derive(r["price"], r.get("carbon_intensity", 0.0), r.get("surplus", 0.0),
                                     favorable_threshold, incentive_threshold)
            if r.get("favorable") is not None:
                slot = replace(slot, favorable=bool(r["favorable"]))
            if r.get("incentive") is not None:
                slot = replace(slot, incentive=bool(r["incentive"]))
            slots.append(slot)
        return cls(slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[SignalSlot]:
        return iter(self._slots)

    def __getitem__(self, hour: int) -> SignalSlot:
        return self._slots[int(hour) % self.cycle_hours]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SignalTable) and self._slots == other._slots

    def __hash__(self) -> int:
        return hash(self._slots)

    def slot_at_minute(self, minute: int) -> SignalSlot:
        return self[int(minute) // 60]

    def favorable_runs(self, min_minutes: int = 0) -> Iterator[FavorableRun]:
        """Yield maximal runs of consecutive favorable hours in a single pass.

        Runs do not wrap past the last hour of the cycle. Runs shorter than
        ``min_minutes`` are skipped.
        """
        run_start: Optional[int] = None
        price_sum = 0.0
        for hour, slot in enumerate(self._slots):
            if slot.favorable:
                if run_start is None:
                    run_start = hour
                    price_sum = 0.0
                price_sum += slot.price
                continue
            if run_start is not None:
                run = FavorableRun(run_start, hour - 1, price_sum / (hour - run_start))
                if run.hours * 60 >= min_minutes:
                    yield run
                run_start = None
        if run_start is not None:
            last = len(self._slots) - 1
            run = FavorableRun(run_start, last, price_sum / (last - run_start + 1))
            if run.hours * 60 >= min_minutes:
                yield run

    def next_favorable_window(self, from_hour: int) -> Optional[Tuple[int, int]]:
        """Return (hours_until, duration_hours) of the next favorable window, wrapping around the cycle."""
        n = self.cycle_hours
        for i in range(n):
            check = (from_hour + i) % n
            if not self[check].favorable:
                continue
            duration = 0
            for j in range(n):
                if self[check + j].favorable:
                    duration += 1
                else:
                    break
            return i, duration
        return None

    def interpolate(self, hour: int, minute: int) -> SignalSlot:
        # linear blend toward the next hour; flags stay those of the current hour
        current = self[hour]
        nxt = self[hour + 1]
        ratio = minute / 60.0

        def lerp(a: float, b: float) -> float:
            return a + (b - a) * ratio

        return SignalSlot(
            price=float(round(lerp(current.price, nxt.price))),
            carbon_intensity=float(round(lerp(current.carbon_intensity, nxt.carbon_intensity))),
            surplus=lerp(current.surplus, nxt.surplus),
            favorable=current.favorable,
            incentive=current.incentive,
        )

    def daily_stats(self) -> Dict[str, float]:
        n = len(self._slots)
        return {
            "avg_price": round(sum(s.price for s in self._slots) / n, 2),
            "favorable_hours": sum(1 for s in self._slots if s.favorable),
            "incentive_hours": sum(1 for s in self._slots if s.incentive),
            "avg_carbon_intensity": round(sum(s.carbon_intensity for s in self._slots) / n, 2),
        }
