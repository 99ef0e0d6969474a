from dataclasses import replace

import pytest

from parksim.config import (
    CapacityParams,
    DemandParams,
    SimulationConfig,
    StationParams,
    Thresholds,
)
from parksim.engine import run_replication
from parksim.montecarlo import (
    aggregate_metrics,
    classify_bottleneck,
    run_monte_carlo,
    run_replications,
    run_scenario,
    simulate,
)
from parksim.result import Bottleneck, RunMetrics, ScenarioMetrics
from parksim.rng import RNG_ALGORITHM, PCGRandom
from parksim.stats import bootstrap_ci, mean, p95
from tests.conftest import make_scenario


def test_same_seed_gives_identical_results(scenario):
    config = SimulationConfig(iterations=10, warm_up_minutes=10)
    assert run_scenario(scenario, config) == run_scenario(scenario, config)


def test_different_seed_changes_metrics(scenario):
    a = run_scenario(scenario, SimulationConfig(iterations=10, master_seed=42))
    b = run_scenario(scenario, SimulationConfig(iterations=10, master_seed=999))
    assert a.metrics != b.metrics


def test_replication_seeds_follow_master_seed(scenario):
    config = SimulationConfig(iterations=3, master_seed=100, warm_up_minutes=10)
    runs = run_replications(scenario, config)
    assert runs == [run_replication(scenario, config, s) for s in (100, 101, 102)]


def test_process_pool_matches_sequential(scenario):
    config = SimulationConfig(iterations=4, warm_up_minutes=10)
    assert run_replications(scenario, config, workers=2) == run_replications(
        scenario, config
    )


def test_metric_bounds(scenario):
    config = SimulationConfig(iterations=20, warm_up_minutes=10)
    result = run_scenario(scenario, config)
    m = result.metrics

    assert result.capacity == 100
    assert 0 <= m.rejection_rate <= 1
    assert 0 <= m.avg_occupancy_pct <= 1
    assert 0 <= m.pct_time_full <= 1
    assert m.max_occupancy <= result.capacity
    assert m.entry_wait.avg_seconds >= 0
    assert m.exit_wait.avg_minutes >= 0
    assert m.throughput_per_hour >= 0
    assert m.exit_wait.p90_minutes <= m.exit_wait.p95_minutes <= m.exit_wait.p99_minutes


def test_confidence_intervals_are_ordered_and_bounded(scenario):
    config = SimulationConfig(iterations=30, warm_up_minutes=10)
    m = run_scenario(scenario, config).metrics

    lo, hi = m.rejection_rate_ci
    assert 0 <= lo <= hi <= 1
    lo, hi = m.exit_wait.p95_ci
    assert 0 <= lo <= hi


def test_bootstrap_stream_seeded_after_replications():
    # 拒否が出る程度に容量を絞る
    scenario = make_scenario(capacity=CapacityParams(floors=1, spots_per_floor=20))
    config = SimulationConfig(iterations=8, master_seed=11, warm_up_minutes=10)
    runs = run_replications(scenario, config)
    seed = config.master_seed + config.iterations

    result = run_scenario(scenario, config)
    expected = aggregate_metrics(runs, config, scenario.total_capacity, PCGRandom(seed))
    assert result.metrics == expected

    # 拒否率の CI が先、出口 p95 の CI が同じ乱数列の続きを使う
    rng = PCGRandom(seed)
    lo, hi = bootstrap_ci([r.rejection_ratio for r in runs], mean, rng)
    assert result.metrics.rejection_rate_ci == (max(0.0, lo), min(1.0, hi))
    assert result.metrics.rejection_rate > 0

    exit_waits = sorted(w for r in runs for w in r.exit_wait_times)
    lo, hi = bootstrap_ci(exit_waits, p95, rng)
    assert result.metrics.exit_wait.p95_ci == (max(0.0, lo), hi)


def test_single_spot_never_over_capacity():
    scenario = make_scenario(
        capacity=CapacityParams(floors=1, spots_per_floor=1),
        demand=DemandParams(
            arrival_rate_per_hour=30,
            peak_multiplier=1.0,
            peak_start_minute=0,
            peak_duration_minutes=60,
        ),
    )
    result = run_scenario(scenario, SimulationConfig(iterations=1, warm_up_minutes=10))
    assert result.metrics.max_occupancy <= 1


def test_entry_bottleneck():
    scenario = make_scenario(
        demand=DemandParams(
            arrival_rate_per_hour=500,
            peak_multiplier=2.0,
            peak_start_minute=0,
            peak_duration_minutes=60,
        ),
        capacity=CapacityParams(floors=1, spots_per_floor=10),
        exit=StationParams(channels=10, mean_service_time_seconds=5),
    )
    config = SimulationConfig(
        iterations=20,
        warm_up_minutes=5,
        thresholds=Thresholds(rejection_rate=0.01, exit_p95_sla_minutes=100.0),
    )
    result = run_scenario(scenario, config)
    assert result.metrics.rejection_rate > 0.01
    assert result.bottleneck in (Bottleneck.ENTRY, Bottleneck.BOTH)
    assert not result.passed


def test_exit_bottleneck():
    scenario = make_scenario(
        demand=DemandParams(
            arrival_rate_per_hour=60,
            peak_multiplier=1.5,
            peak_start_minute=0,
            peak_duration_minutes=30,
        ),
        capacity=CapacityParams(floors=10, spots_per_floor=100),
        exit=StationParams(channels=1, mean_service_time_seconds=60),
    )
    config = SimulationConfig(
        iterations=20,
        warm_up_minutes=5,
        thresholds=Thresholds(rejection_rate=0.5, exit_p95_sla_minutes=0.1),
    )
    result = run_scenario(scenario, config)
    assert result.metrics.exit_wait.p95_minutes > 0.1
    assert result.bottleneck in (Bottleneck.EXIT, Bottleneck.BOTH)
    assert not result.passed


def test_low_demand_passes():
    scenario = make_scenario(
        demand=DemandParams(
            arrival_rate_per_hour=30,
            peak_multiplier=1.0,
            peak_start_minute=0,
            peak_duration_minutes=60,
        ),
        capacity=CapacityParams(floors=4, spots_per_floor=100),
    )
    result = run_scenario(scenario, SimulationConfig(iterations=10, warm_up_minutes=10))
    assert result.bottleneck is Bottleneck.NONE
    assert result.passed


@pytest.mark.parametrize(
    "rejection, p95, expected",
    [
        (0.0, 0.0, Bottleneck.NONE),
        (0.2, 0.0, Bottleneck.ENTRY),
        (0.0, 5.0, Bottleneck.EXIT),
        (0.2, 5.0, Bottleneck.BOTH),
        (0.05, 3.0, Bottleneck.NONE),
    ],
)
def test_classify_bottleneck(rejection, p95, expected):
    metrics = ScenarioMetrics(rejection_rate=rejection)
    metrics.exit_wait.p95_minutes = p95
    assert classify_bottleneck(metrics, Thresholds()) is expected


def test_aggregate_pools_observations():
    runs = [
        RunMetrics(
            total_arrivals=10,
            total_exits=8,
            rejections=1,
            entry_wait_times=[0.0, 6.0],
            exit_wait_times=[1.0, 3.0],
            occupancy_samples=[2, 4],
            exit_queue_samples=[0, 1],
            max_occupancy=4,
            time_at_full_capacity=9.0,
        ),
        RunMetrics(
            total_arrivals=30,
            total_exits=11,
            rejections=3,
            entry_wait_times=[12.0],
            exit_wait_times=[2.0],
            occupancy_samples=[6],
            exit_queue_samples=[2],
            max_occupancy=6,
            time_at_full_capacity=0.0,
        ),
    ]
    config = SimulationConfig(warm_up_minutes=30, stabilization_buffer_minutes=60)
    m = aggregate_metrics(runs, config, total_capacity=8, rng=PCGRandom(1))

    # 比率の平均ではなく合計の比
    assert m.rejection_rate == pytest.approx(4 / 40)
    assert m.entry_wait.avg_seconds == pytest.approx(6.0)
    assert m.exit_wait.avg_minutes == pytest.approx(2.0)
    assert m.exit_wait.p95_minutes == pytest.approx(2.9)
    assert m.exit_wait.queue_avg == pytest.approx(1.0)
    assert m.avg_occupancy_pct == pytest.approx(4 / 8)
    assert m.max_occupancy == 6
    assert m.pct_time_full == pytest.approx(4.5 / 90)
    assert m.throughput_per_hour == pytest.approx(9.5 / 90 * 60)
    assert m.arrivals_total == 20
    assert m.exits_total == 10


def test_aggregate_empty_observations_are_zero():
    config = SimulationConfig(warm_up_minutes=0, stabilization_buffer_minutes=0)
    m = aggregate_metrics([RunMetrics()], config, total_capacity=0, rng=PCGRandom(1))
    assert m.rejection_rate == 0.0
    assert m.avg_occupancy_pct == 0.0
    assert m.pct_time_full == 0.0
    assert m.throughput_per_hour == 0.0
    assert m.exit_wait.p95_minutes == 0.0
    assert m.exit_wait.p95_ci == (0.0, 0.0)


def test_run_monte_carlo_keeps_input_order(scenario):
    scenarios = [replace(scenario, name=n) for n in ("a", "b", "c")]
    results = run_monte_carlo(scenarios, SimulationConfig(iterations=2, warm_up_minutes=10))
    assert [r.scenario_name for r in results] == ["a", "b", "c"]


def test_simulate_metadata(scenario):
    config = SimulationConfig(iterations=2, master_seed=9, warm_up_minutes=10)
    response = simulate([scenario], config, warning="careful")

    meta = response.metadata
    assert meta.rng_algorithm == RNG_ALGORITHM
    assert meta.master_seed == 9
    assert meta.iterations == 2
    assert meta.warm_up_minutes == 10
    assert meta.execution_time_ms >= 0
    assert meta.timestamp_utc.endswith("+00:00")

    body = response.to_dict()
    assert body["warning"] == "careful"
    assert body["results"][0]["bottleneck"] in {"NONE", "ENTRY", "EXIT", "BOTH"}
