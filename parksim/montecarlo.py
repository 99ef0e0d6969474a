"""モンテカルロ実行と集計。"""

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from datetime import datetime, timezone
from functools import partial

from parksim.config import (
    DEFAULT_CONFIG,
    ENGINE_VERSION,
    Scenario,
    SimulationConfig,
    Thresholds,
)
from parksim.engine import run_replication
from parksim.result import (
    Bottleneck,
    EntryWaitMetrics,
    ExitWaitMetrics,
    RunMetrics,
    ScenarioMetrics,
    ScenarioResult,
    SimulationMetadata,
    SimulationResponse,
)
from parksim.rng import RNG_ALGORITHM, PCGRandom
from parksim.stats import bootstrap_ci, mean, p95, percentile, round_half_up

logger = logging.getLogger(__name__)


def run_replications(
    scenario: Scenario,
    config: SimulationConfig,
    workers: int | None = None,
) -> list[RunMetrics]:
    """master_seed + i をシードに iterations 回実行する (結果はインデックス順)。"""
    seeds = range(config.master_seed, config.master_seed + config.iterations)
    job = partial(run_replication, scenario, config)

    if workers and workers > 1 and config.iterations > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(job, seeds))
    return [job(seed) for seed in seeds]


def aggregate_metrics(
    runs: Sequence[RunMetrics],
    config: SimulationConfig,
    total_capacity: int,
    rng: PCGRandom,
) -> ScenarioMetrics:
    """レプリケーション結果をプールして指標を計算する。"""
    all_entry_waits: list[float] = []
    all_exit_waits: list[float] = []
    all_occupancies: list[int] = []
    all_exit_queues: list[int] = []

    total_arrivals = 0
    total_exits = 0
    total_rejections = 0
    total_time_full = 0.0
    max_occupancy = 0
    max_entry_queue = 0
    max_exit_queue = 0

    for run in runs:
        all_entry_waits.extend(run.entry_wait_times)
        all_exit_waits.extend(run.exit_wait_times)
        all_occupancies.extend(run.occupancy_samples)
        all_exit_queues.extend(run.exit_queue_samples)

        total_arrivals += run.total_arrivals
        total_exits += run.total_exits
        total_rejections += run.rejections
        total_time_full += run.time_at_full_capacity
        max_occupancy = max(max_occupancy, run.max_occupancy)
        max_entry_queue = max(max_entry_queue, run.max_entry_queue)
        max_exit_queue = max(max_exit_queue, run.max_exit_queue)

    n_runs = len(runs)
    avg_arrivals = total_arrivals / n_runs if n_runs else 0.0
    avg_exits = total_exits / n_runs if n_runs else 0.0

    rejection_rate = total_rejections / total_arrivals if total_arrivals > 0 else 0.0
    # ブートストラップは必ず拒否率 → 出口 p95 の順に行う
    rejection_ci = bootstrap_ci([run.rejection_ratio for run in runs], mean, rng)

    all_entry_waits.sort()
    all_exit_waits.sort()
    exit_ci = bootstrap_ci(all_exit_waits, p95, rng)

    window = config.metrics_window_minutes
    avg_time_full = total_time_full / n_runs if n_runs else 0.0
    pct_time_full = avg_time_full / window if window > 0 else 0.0
    throughput = avg_exits / window * 60 if window > 0 else 0.0

    avg_occupancy = mean(all_occupancies)

    return ScenarioMetrics(
        avg_occupancy_pct=avg_occupancy / total_capacity if total_capacity > 0 else 0.0,
        max_occupancy=max_occupancy,
        pct_time_full=min(1.0, pct_time_full),
        rejection_rate=rejection_rate,
        rejection_rate_ci=(max(0.0, rejection_ci[0]), min(1.0, rejection_ci[1])),
        entry_wait=EntryWaitMetrics(
            avg_seconds=mean(all_entry_waits),
            p95_seconds=percentile(all_entry_waits, 95),
            queue_max=max_entry_queue,
        ),
        exit_wait=ExitWaitMetrics(
            avg_minutes=mean(all_exit_waits),
            p90_minutes=percentile(all_exit_waits, 90),
            p95_minutes=percentile(all_exit_waits, 95),
            p95_ci=(max(0.0, exit_ci[0]), exit_ci[1]),
            p99_minutes=percentile(all_exit_waits, 99),
            queue_max=max_exit_queue,
            queue_avg=mean(all_exit_queues),
        ),
        throughput_per_hour=throughput,
        arrivals_total=round_half_up(avg_arrivals),
        exits_total=round_half_up(avg_exits),
    )


def classify_bottleneck(metrics: ScenarioMetrics, thresholds: Thresholds) -> Bottleneck:
    entry_failed = metrics.rejection_rate > thresholds.rejection_rate
    exit_failed = metrics.exit_wait.p95_minutes > thresholds.exit_p95_sla_minutes

    if entry_failed and exit_failed:
        return Bottleneck.BOTH
    if entry_failed:
        return Bottleneck.ENTRY
    if exit_failed:
        return Bottleneck.EXIT
    return Bottleneck.NONE


def run_scenario(
    scenario: Scenario,
    config: SimulationConfig = DEFAULT_CONFIG,
    workers: int | None = None,
) -> ScenarioResult:
    """1 シナリオのモンテカルロ実行。"""
    logger.debug(
        f"Scenario {scenario.name!r}: {config.iterations} replications "
        f"from seed {config.master_seed}"
    )
    runs = run_replications(scenario, config, workers=workers)

    bootstrap_rng = PCGRandom(config.master_seed + config.iterations)
    total_capacity = scenario.total_capacity
    metrics = aggregate_metrics(runs, config, total_capacity, bootstrap_rng)
    bottleneck = classify_bottleneck(metrics, config.thresholds)

    logger.debug(
        f"Scenario {scenario.name!r}: rejection={metrics.rejection_rate:.4f} "
        f"exit_p95={metrics.exit_wait.p95_minutes:.2f}min "
        f"bottleneck={bottleneck.value}"
    )
    return ScenarioResult(
        scenario_name=scenario.name,
        capacity=total_capacity,
        metrics=metrics,
        bottleneck=bottleneck,
        passed=bottleneck is Bottleneck.NONE,
    )


def run_monte_carlo(
    scenarios: Sequence[Scenario],
    config: SimulationConfig = DEFAULT_CONFIG,
    workers: int | None = None,
) -> list[ScenarioResult]:
    """全シナリオを入力順に実行する。"""
    return [run_scenario(s, config, workers=workers) for s in scenarios]


def simulate(
    scenarios: Sequence[Scenario],
    config: SimulationConfig = DEFAULT_CONFIG,
    warning: str | None = None,
    workers: int | None = None,
) -> SimulationResponse:
    """シミュレーションを実行し、メタデータ付きのレスポンスを返す。"""
    start_time = time.perf_counter()
    results = run_monte_carlo(scenarios, config, workers=workers)
    elapsed_ms = round((time.perf_counter() - start_time) * 1000)

    metadata = SimulationMetadata(
        engine_version=ENGINE_VERSION,
        rng_algorithm=RNG_ALGORITHM,
        master_seed=config.master_seed,
        iterations=config.iterations,
        warm_up_minutes=config.warm_up_minutes,
        timestamp_utc=datetime.now(timezone.utc).isoformat(),
        execution_time_ms=elapsed_ms,
    )
    logger.info(
        f"Simulated {len(results)} scenario(s) x {config.iterations} "
        f"iterations in {elapsed_ms} ms"
    )
    return SimulationResponse(results=results, metadata=metadata, warning=warning)
