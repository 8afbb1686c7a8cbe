from __future__ import annotations
from typing import Optional


class InvalidSignalLength(ValueError):
    """Signal table built from the wrong number of hourly slots."""

    def __init__(self, got: int, expected: int) -> None:
        super().__init__(f"Signal table needs exactly {expected} hourly slots, got {got}")
        self.got = got
        self.expected = expected


class InfeasibleWindow(Exception):
    """A job's departure window collapsed to nothing (e.g. duration longer than the cycle)."""

    def __init__(self, job_id: str, lower: int, upper: int) -> None:
        super().__init__(f"Job {job_id}: empty departure window [{lower}, {upper}]")
        self.job_id = job_id
        self.lower = lower
        self.upper = upper


def safe_ratio(numerator: float, denominator: float, default: Optional[float] = 0.0) -> Optional[float]:
    # zero denominators yield the caller's sentinel instead of raising
    if not denominator:
        return default
    return numerator / denominator
