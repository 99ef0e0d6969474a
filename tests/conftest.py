from dataclasses import replace

import pytest

from parksim.config import (
    CapacityParams,
    DemandParams,
    ParkingDurationParams,
    Scenario,
    SimulationConfig,
    StationParams,
    Variability,
)


def make_scenario(**overrides) -> Scenario:
    base = Scenario(
        name="test",
        demand=DemandParams(
            arrival_rate_per_hour=60,
            peak_multiplier=1.5,
            peak_start_minute=0,
            peak_duration_minutes=60,
        ),
        capacity=CapacityParams(floors=2, spots_per_floor=50),
        parking_duration=ParkingDurationParams(
            mean_minutes=60, variability=Variability.MEDIUM
        ),
        entry=StationParams(channels=2, mean_service_time_seconds=10),
        exit=StationParams(channels=2, mean_service_time_seconds=15),
    )
    return replace(base, **overrides)


@pytest.fixture
def scenario() -> Scenario:
    return make_scenario()


@pytest.fixture
def quick_config() -> SimulationConfig:
    return SimulationConfig(iterations=5, warm_up_minutes=10)


@pytest.fixture
def request_body() -> dict:
    return {
        "scenarios": [
            {
                "name": "baseline",
                "demand": {
                    "arrival_rate_per_hour": 60,
                    "peak_multiplier": 1.5,
                    "peak_start_minute": 0,
                    "peak_duration_minutes": 60,
                },
                "capacity": {"floors": 2, "spots_per_floor": 50},
                "parking_duration": {"mean_minutes": 60, "variability": "MEDIUM"},
                "entry": {"channels": 2, "mean_service_time_seconds": 10},
                "exit": {"channels": 2, "mean_service_time_seconds": 15},
            }
        ],
        "config": {"iterations": 3, "master_seed": 7, "warm_up_minutes": 10},
    }
