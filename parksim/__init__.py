"""駐車場設計評価のための離散イベント / モンテカルロシミュレータ。"""

from parksim.config import (
    DEFAULT_CONFIG,
    ENGINE_VERSION,
    CapacityParams,
    DemandParams,
    ParkingDurationParams,
    Scenario,
    SimulationConfig,
    StationParams,
    Thresholds,
    Variability,
)
from parksim.engine import ParkingSimulator, run_replication
from parksim.montecarlo import run_monte_carlo, run_scenario, simulate
from parksim.result import (
    Bottleneck,
    RunMetrics,
    ScenarioMetrics,
    ScenarioResult,
    SimulationResponse,
)
from parksim.rng import PCGRandom

__all__ = [
    "DEFAULT_CONFIG",
    "ENGINE_VERSION",
    "Bottleneck",
    "CapacityParams",
    "DemandParams",
    "ParkingDurationParams",
    "ParkingSimulator",
    "PCGRandom",
    "RunMetrics",
    "Scenario",
    "ScenarioMetrics",
    "ScenarioResult",
    "SimulationConfig",
    "SimulationResponse",
    "StationParams",
    "Thresholds",
    "Variability",
    "run_monte_carlo",
    "run_replication",
    "run_scenario",
    "simulate",
]
