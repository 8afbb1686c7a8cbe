from __future__ import annotations
import json
from pathlib import Path
from typing import Dict, List, Tuple

from pydantic import BaseModel, Field, model_validator

from railgrid.core.models import Job, JobClass, RewardWeights
from railgrid.core.signal import FAVORABLE_SURPLUS, INCENTIVE_SURPLUS, SignalTable

DATA_DIR = Path(__file__).parent / "data"


class JobIn(BaseModel):
    id: str
    job_class: JobClass = Field(alias="class")
    corridor: str
    start: int = Field(ge=0, le=1440)
    end: int = Field(ge=0, le=1440)
    energy: float | None = Field(default=None, gt=0)
    flexibility: float | None = Field(default=None, ge=0.0, le=1.0)
    priority: int | None = Field(default=None, ge=1, le=5)
    name: str | None = None
    origin: str | None = None
    destination: str | None = None
    passengers: int | None = None
    cargo_tonnes: float | None = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _end_after_start(self) -> "JobIn":
        if self.end <= self.start:
            raise ValueError(f"job {self.id}: end must be after start")
        return self

    def to_domain(self) -> Job:
        return Job.from_class(
            self.id,
            self.job_class,
            self.corridor,
            self.start,
            self.end,
            energy=self.energy,
            flexibility=self.flexibility,
            priority=self.priority,
            name=self.name,
            origin=self.origin,
            destination=self.destination,
            passengers=self.passengers,
            cargo_tonnes=self.cargo_tonnes,
        )


class SignalSlotIn(BaseModel):
    hour: int | None = None
    price: float
    carbon_intensity: float = Field(default=0.0, ge=0.0)
    surplus: float = 0.0
    favorable: bool | None = None
    incentive: bool | None = None


class WeightsIn(BaseModel):
    w1: float = Field(default=0.3, ge=0.0)
    w2: float = Field(default=0.4, ge=0.0)
    w3: float = Field(default=0.25, ge=0.0)
    w4: float = Field(default=0.05, ge=0.0)

    def to_domain(self) -> RewardWeights:
        return RewardWeights(w1=self.w1, w2=self.w2, w3=self.w3, w4=self.w4)


class ScenarioIn(BaseModel):
    jobs: List[JobIn]
    signal: List[SignalSlotIn]
    weights: WeightsIn = Field(default_factory=WeightsIn)
    favorable_threshold: float = FAVORABLE_SURPLUS
    incentive_threshold: float = INCENTIVE_SURPLUS

    def to_domain(self) -> Tuple[List[Job], SignalTable, RewardWeights]:
        slots = self.signal
        if all(s.hour is not None for s in slots):
            slots = sorted(slots, key=lambda s: s.hour)
        table = SignalTable.from_records(
            [s.model_dump() for s in slots],
            favorable_threshold=self.favorable_threshold,
            incentive_threshold=self.incentive_threshold,
        )
        return [j.to_domain() for j in self.jobs], table, self.weights.to_domain()


def load_scenario(path: Path | str | None = None) -> Tuple[List[Job], SignalTable, RewardWeights]:
    """Load a scenario JSON file; defaults to the bundled sample.

    The sample is split into ``sample_jobs.json`` and ``sample_signal.json``;
    a single file must hold ``jobs`` and ``signal`` keys.
    """
    if path is None:
        payload: Dict = {
            "jobs": json.loads((DATA_DIR / "sample_jobs.json").read_text(encoding="utf-8"))["jobs"],
            "signal": json.loads((DATA_DIR / "sample_signal.json").read_text(encoding="utf-8"))["signal"],
        }
    else:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return ScenarioIn.model_validate(payload).to_domain()
