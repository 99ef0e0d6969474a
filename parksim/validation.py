"""リクエストの検証とデフォルト値のマージ。"""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from parksim.config import (
    CapacityParams,
    DemandParams,
    ParkingDurationParams,
    Scenario,
    SimulationConfig,
    StationParams,
    Thresholds,
    Variability,
)

MAX_SCENARIOS = 10
MAX_ITERATIONS = 2000
# ピーク時の到着台数が容量のこの割合を超えたら警告
CAPACITY_WARNING_RATIO = 0.8


class RequestValidationError(ValueError):
    """リクエスト不正。code と項目ごとの details を持つ。"""

    def __init__(self, details: list[dict[str, Any]], code: str = "VALIDATION_ERROR"):
        super().__init__("Invalid input parameters")
        self.code = code
        self.details = details


class _Model(BaseModel):
    # 数値は JSON の number のみ受け付け、inf/NaN は拒否する
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class DemandModel(_Model):
    arrival_rate_per_hour: float = Field(gt=0, strict=True)
    peak_multiplier: float = Field(ge=1.0, strict=True)
    peak_start_minute: int = Field(ge=0, strict=True)
    peak_duration_minutes: float = Field(gt=0, strict=True)


class CapacityModel(_Model):
    floors: int = Field(ge=1, strict=True)
    spots_per_floor: int = Field(ge=1, strict=True)


class ParkingDurationModel(_Model):
    mean_minutes: float = Field(gt=0, strict=True)
    variability: Literal["LOW", "MEDIUM", "HIGH"]


class StationModel(_Model):
    channels: int = Field(ge=1, strict=True)
    mean_service_time_seconds: float = Field(gt=0, strict=True)


class ScenarioModel(_Model):
    name: str = Field(min_length=1)
    demand: DemandModel
    capacity: CapacityModel
    parking_duration: ParkingDurationModel
    entry: StationModel
    exit: StationModel

    def to_scenario(self) -> Scenario:
        return Scenario(
            name=self.name,
            demand=DemandParams(**self.demand.model_dump()),
            capacity=CapacityParams(**self.capacity.model_dump()),
            parking_duration=ParkingDurationParams(
                mean_minutes=self.parking_duration.mean_minutes,
                variability=Variability(self.parking_duration.variability),
            ),
            entry=StationParams(**self.entry.model_dump()),
            exit=StationParams(**self.exit.model_dump()),
        )


class ThresholdsModel(_Model):
    rejection_rate: float = Field(default=0.05, ge=0, le=1, strict=True)
    exit_p95_sla_minutes: float = Field(default=3.0, gt=0, strict=True)


class ConfigModel(_Model):
    iterations: int = Field(default=500, ge=1, le=MAX_ITERATIONS, strict=True)
    master_seed: int = Field(default=42, strict=True)
    warm_up_minutes: float = Field(default=30.0, ge=0, strict=True)
    stabilization_buffer_minutes: float = Field(default=60.0, ge=0, strict=True)
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)

    def to_config(self) -> SimulationConfig:
        return SimulationConfig(
            iterations=self.iterations,
            master_seed=self.master_seed,
            warm_up_minutes=self.warm_up_minutes,
            stabilization_buffer_minutes=self.stabilization_buffer_minutes,
            thresholds=Thresholds(**self.thresholds.model_dump()),
        )


class SimulationRequest(_Model):
    scenarios: list[ScenarioModel] = Field(min_length=1, max_length=MAX_SCENARIOS)
    config: ConfigModel = Field(default_factory=ConfigModel)


def _scalar_or_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value if isinstance(value, (str, int, float, bool)) else None


def _is_scenario_limit(error: dict) -> bool:
    return error["type"] == "too_long" and tuple(error["loc"]) == ("scenarios",)


def validate_request(data: Any) -> tuple[list[Scenario], SimulationConfig]:
    """リクエスト本体を検証し、エンジン用のシナリオと設定を返す。

    不正な場合は RequestValidationError を送出する。
    """
    if data is None:
        raise RequestValidationError(
            [{"field": "", "reason": "Request body must be a JSON object", "value": None}]
        )
    try:
        request = SimulationRequest.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "reason": err["msg"],
                "value": _scalar_or_none(err.get("input")),
            }
            for err in errors
        ]
        code = (
            "SCENARIO_LIMIT_EXCEEDED"
            if any(_is_scenario_limit(err) for err in errors)
            else "VALIDATION_ERROR"
        )
        raise RequestValidationError(details, code=code) from e

    scenarios = [s.to_scenario() for s in request.scenarios]
    return scenarios, request.config.to_config()


def check_capacity_warning(scenarios: list[Scenario]) -> str | None:
    """ピーク時の到着見込みが容量の 80% を超えるシナリオがあれば警告文を返す。"""
    warnings = []
    for scenario in scenarios:
        demand = scenario.demand
        peak_arrivals = demand.peak_rate_per_minute * demand.peak_duration_minutes
        if peak_arrivals > scenario.total_capacity * CAPACITY_WARNING_RATIO:
            warnings.append(
                f'Scenario "{scenario.name}": Peak arrivals may exceed 80% of capacity. '
                "Consider increasing capacity or reducing peak duration."
            )
    return "\n".join(warnings) if warnings else None
